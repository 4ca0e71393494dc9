# core/exception_handler.py

import logging

from django.db import DatabaseError
from rest_framework import status
from rest_framework.response import Response
from rest_framework.views import exception_handler

from core.exceptions import EscaShopError

logger = logging.getLogger(__name__)


def escashop_exception_handler(exc, context):
    """Render domain errors with their code; hide infrastructure failures"""
    if isinstance(exc, EscaShopError):
        body = {'error': exc.code, 'message': exc.message}
        body.update(exc.detail())
        return Response(body, status=exc.status_code)

    if isinstance(exc, DatabaseError):
        view = context.get('view')
        logger.exception(
            f"[API] Database failure in {view.__class__.__name__ if view else 'unknown view'}"
        )
        return Response(
            {'error': 'internal_error', 'message': 'Internal error, please retry'},
            status=status.HTTP_500_INTERNAL_SERVER_ERROR,
        )

    return exception_handler(exc, context)
