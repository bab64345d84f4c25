import logging
import time
import uuid

from django.core.exceptions import ValidationError
from django.utils.deprecation import MiddlewareMixin

from tenants.models import Tenant

logger = logging.getLogger("django.request")


class RequestLogMiddleware(MiddlewareMixin):
    def process_request(self, request):
        request.request_id = request.headers.get("X-Request-ID", str(uuid.uuid4()))
        request._start_time = time.time()

    def process_response(self, request, response):
        latency = int((time.time() - getattr(request, "_start_time", time.time())) * 1000)
        tenant = getattr(request, "tenant", None)
        logger.info(
            "http_request",
            extra={
                "request_id": getattr(request, "request_id", "-"),
                "tenant_id": str(tenant.id) if tenant is not None else None,
                "path": request.path,
                "method": request.method,
                "status": response.status_code,
                "latency_ms": latency,
            },
        )
        response["X-Request-ID"] = getattr(request, "request_id", "-")
        return response


class TenantHeaderMiddleware(MiddlewareMixin):
    """
    Resolve o tenant pelo header X-Tenant-ID e deixa em request.tenant
    (None quando ausente, malformado ou inexistente).

    Não há separação por schema: todas as tabelas ficam no mesmo banco e o
    isolamento entre tenants depende de toda consulta filtrar por tenant_id
    (services fiscais, fatura_store e permissões fazem isso).
    """

    header = "X-Tenant-ID"

    def process_request(self, request):
        request.tenant = None

        tenant_id = (request.headers.get(self.header) or "").strip()
        if not tenant_id:
            return None

        try:
            request.tenant = Tenant.objects.filter(id=tenant_id).first()
        except ValidationError:
            logger.warning(
                "tenant_header_invalido",
                extra={"path": request.path, "tenant_header": tenant_id[:64]},
            )
        return None
