# tenants/permissions.py
import logging

from django.conf import settings
from rest_framework.exceptions import PermissionDenied
from rest_framework.permissions import BasePermission

from tenants.models import TenantUsuario

logger = logging.getLogger("vet.tenants")


class PublicProvisioningPermission(BasePermission):
    """
    Permite provisionamento de tenant via endpoint público.

    Regras:
      - Requer um token estático no header:
          X-Admin-Token OU X-Tenant-Provisioning-Token
      - O token deve bater com ADMIN_PROVISIONING_TOKEN ou
        TENANT_PROVISIONING_TOKEN do settings.
    """

    message = "Você não tem permissão para executar essa ação."

    def has_permission(self, request, view) -> bool:
        header_token = (
            request.headers.get("X-Admin-Token")
            or request.headers.get("X-Tenant-Provisioning-Token")
        )
        env_token = (
            getattr(settings, "ADMIN_PROVISIONING_TOKEN", None)
            or getattr(settings, "TENANT_PROVISIONING_TOKEN", None)
        )

        if not header_token:
            logger.warning(
                "public_provisioning_permission_denied_no_header_token",
                extra={
                    "reason": "missing_header_token",
                    "path": request.path,
                    "method": request.method,
                },
            )
            return False

        if not env_token:
            logger.error(
                "public_provisioning_permission_denied_no_env_token",
                extra={
                    "reason": "missing_env_token",
                    "path": request.path,
                    "method": request.method,
                },
            )
            return False

        if header_token != env_token:
            logger.warning(
                "public_provisioning_permission_denied_invalid_token",
                extra={
                    "reason": "invalid_token",
                    "path": request.path,
                    "method": request.method,
                },
            )
            return False

        return True


class IsTenantMember(BasePermission):
    """
    Checa se o usuário autenticado pertence ao tenant do header X-Tenant-ID.

    Subclasses podem exigir um recurso do plano (`recurso`) e uma
    permissão do vínculo (`permissao`). O vínculo encontrado fica em
    request.tenant_usuario para as views.
    """

    recurso: str | None = None
    permissao: str | None = None

    def has_permission(self, request, view) -> bool:
        user = getattr(request, "user", None)
        if not user or not user.is_authenticated:
            # deixa o IsAuthenticated responder 401
            return False

        tenant = getattr(request, "tenant", None)
        if tenant is None or not tenant.ativo:
            raise PermissionDenied(
                {"code": "TENANT_1001", "message": "Tenant não informado ou inativo."}
            )

        vinculo = TenantUsuario.objects.filter(tenant=tenant, user_id=user.id).first()
        if vinculo is None:
            logger.warning(
                "tenant_acesso_negado",
                extra={
                    "event": "tenant_permission",
                    "tenant_id": str(tenant.id),
                    "user_id": user.id,
                    "reason": "not_member",
                    "path": request.path,
                },
            )
            raise PermissionDenied(
                {"code": "AUTH_1006", "message": "Usuário sem acesso a este tenant."}
            )

        if self.recurso and not tenant.tem_recurso(self.recurso):
            raise PermissionDenied(
                {
                    "code": "TENANT_1002",
                    "message": f"Recurso '{self.recurso}' não habilitado para este tenant.",
                }
            )

        if self.permissao and not vinculo.tem_permissao(self.permissao):
            logger.warning(
                "tenant_permissao_negada",
                extra={
                    "event": "tenant_permission",
                    "tenant_id": str(tenant.id),
                    "user_id": user.id,
                    "permissao": self.permissao,
                    "reason": "missing_permission",
                    "path": request.path,
                },
            )
            raise PermissionDenied(
                {
                    "code": "AUTH_1007",
                    "message": f"Usuário sem a permissão '{self.permissao}'.",
                }
            )

        request.tenant_usuario = vinculo
        return True


def requer_recurso(recurso: str, permissao: str | None = None) -> type[IsTenantMember]:
    """
    Monta uma permission class para @permission_classes.

        @permission_classes([IsAuthenticated, requer_recurso("nfe", "manage_fiscal")])
    """
    nome = f"Requer_{recurso}_{permissao or 'leitura'}"
    return type(nome, (IsTenantMember,), {"recurso": recurso, "permissao": permissao})
