# tenants/views/tenants_views.py

import logging

from django.contrib.auth import get_user_model
from django.db import IntegrityError, transaction
from rest_framework import status
from rest_framework.decorators import (
    api_view,
    permission_classes,
    authentication_classes,
)

from commons.responses import erro, sucesso
from fiscal.services.config_service import obter_ou_criar_config
from tenants.models import Tenant, TenantUsuario
from tenants.permissions import PublicProvisioningPermission
from tenants.serializers import PERMISSOES_DISPONIVEIS, TenantCreateSerializer

logger = logging.getLogger("vet.tenants")


def _criar_usuario_admin(tenant: Tenant, dados: dict):
    """
    Cria o usuário ADMIN da clínica e o vínculo com o tenant.

    Senha inutilizável: a definição de senha acontece em fluxo posterior.
    """
    User = get_user_model()

    admin_user = User.objects.create(
        username=dados["username"],
        email=dados.get("email") or "",
        is_active=True,
    )
    admin_user.set_unusable_password()
    admin_user.save(update_fields=["password"])

    TenantUsuario.objects.create(
        tenant=tenant,
        user_id=admin_user.id,
        is_admin=True,
        permissoes=list(PERMISSOES_DISPONIVEIS),
    )
    return admin_user


@api_view(["POST"])
@authentication_classes([])
@permission_classes([PublicProvisioningPermission])
def criar_tenant(request):
    """
    Provisiona uma nova clínica:

      - Tenant (documento único)
      - Usuário ADMIN + vínculo TenantUsuario com todas as permissões
      - Configuração fiscal padrão (homologação)

    Tudo numa única transação: qualquer falha desfaz o provisionamento.
    """
    ser = TenantCreateSerializer(data=request.data)
    ser.is_valid(raise_exception=True)
    data = ser.validated_data

    if Tenant.objects.filter(documento=data["documento"]).exists():
        return erro(
            "Já existe um tenant provisionado com este documento.",
            code="tenant_already_exists",
            errors={"documento": ["Documento já cadastrado."]},
        )

    User = get_user_model()
    if User.objects.filter(username=data["admin"]["username"]).exists():
        return erro(
            "Já existe um usuário com este username.",
            code="username_already_exists",
            errors={"admin": {"username": ["Username já cadastrado."]}},
        )

    try:
        with transaction.atomic():
            tenant = Tenant.objects.create(
                nome=data["nome"],
                documento=data["documento"],
                recursos=data["recursos"],
            )
            admin_user = _criar_usuario_admin(tenant, data["admin"])
            config = obter_ou_criar_config(tenant_id=tenant.id)

    except IntegrityError:
        logger.exception(
            "tenant_provisionamento_integridade",
            extra={"event": "tenant_provisionamento", "documento": data["documento"]},
        )
        return erro(
            "Não foi possível provisionar o tenant devido a um conflito de dados (integridade).",
            code="integrity_error",
        )

    logger.info(
        "tenant_provisionado",
        extra={
            "event": "tenant_provisionamento",
            "tenant_id": str(tenant.id),
            "admin_user_id": admin_user.id,
            "outcome": "success",
        },
    )

    return sucesso(
        {
            "tenant_id": str(tenant.id),
            "nome": tenant.nome,
            "documento": tenant.documento,
            "recursos": tenant.recursos,
            "admin_user_id": admin_user.id,
            "admin_username": admin_user.username,
            "nfe_config_id": str(config.id),
            "ambiente": config.ambiente,
        },
        "Tenant provisionado com sucesso",
        status=status.HTTP_201_CREATED,
    )
