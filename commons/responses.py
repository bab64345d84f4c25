# commons/responses.py
"""
Envelope padrão das respostas da API:

    {"success": true, "message": "...", "data": {...}}
    {"success": false, "message": "...", "code": "...", "errors": {...}}
"""

from rest_framework import status as http_status
from rest_framework.response import Response


def sucesso(data=None, message: str = "", status: int = http_status.HTTP_200_OK) -> Response:
    return Response({"success": True, "message": message, "data": data}, status=status)


def erro(message: str, *, code: str | None = None, errors=None, status: int = http_status.HTTP_400_BAD_REQUEST) -> Response:
    corpo = {"success": False, "message": message, "code": code}
    if errors is not None:
        corpo["errors"] = errors
    return Response(corpo, status=status)
