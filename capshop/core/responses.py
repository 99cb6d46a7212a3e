from rest_framework import status
from rest_framework.response import Response


def success_response(data=None, message=None, status_code=status.HTTP_200_OK, **extra):
    """Build the ``{success, data, message, ...}`` envelope used by every endpoint"""
    payload = {'success': True}
    if data is not None:
        payload['data'] = data
        if isinstance(data, list) and 'count' not in extra:
            payload['count'] = len(data)
    if message:
        payload['message'] = message
    payload.update(extra)
    return Response(payload, status=status_code)
