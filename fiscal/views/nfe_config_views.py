# fiscal/views/nfe_config_views.py

import logging

from rest_framework.decorators import api_view, parser_classes, permission_classes
from rest_framework.exceptions import ValidationError as DRFValidationError
from rest_framework.parsers import FormParser, JSONParser, MultiPartParser
from rest_framework.permissions import IsAuthenticated

from commons.responses import sucesso
from fiscal.exceptions import FiscalError
from fiscal.permissions import NfeConfigPermission, PodeGerenciarFiscal
from fiscal.serializers_config import (
    CertificadoOutputSerializer,
    CertificadoUploadSerializer,
    NfeConfigInputSerializer,
    NfeConfigOutputSerializer,
)
from fiscal.services.config_service import (
    anexar_certificado,
    atualizar_config,
    obter_ou_criar_config,
)

logger = logging.getLogger("vet.fiscal")


def _tenant_id_from_request(request):
    return getattr(getattr(request, "tenant", None), "id", None)


@api_view(["GET", "PUT"])
@permission_classes([IsAuthenticated, NfeConfigPermission])
def nfe_config_view(request):
    """
    Configuração fiscal de NF-e do tenant.

    URL final:
        GET /api/v1/fiscal/nfe/config/
        PUT /api/v1/fiscal/nfe/config/   (requer manage_fiscal)

    O GET cria a configuração padrão (homologação) no primeiro acesso.
    """
    tenant_id = _tenant_id_from_request(request)
    user_id = getattr(request.user, "id", None)

    if request.method == "GET":
        config = obter_ou_criar_config(tenant_id=tenant_id)
        return sucesso(NfeConfigOutputSerializer(config).data)

    try:
        ser_in = NfeConfigInputSerializer(data=request.data, partial=True)
        ser_in.is_valid(raise_exception=True)

        config = atualizar_config(tenant_id=tenant_id, dados=dict(ser_in.validated_data))

    except DRFValidationError as exc:
        logger.warning(
            "nfe_config_validacao",
            extra={
                "event": "nfe_config",
                "tenant_id": str(tenant_id),
                "user_id": user_id,
                "errors": exc.detail,
                "outcome": "validation_error",
            },
        )
        raise

    except FiscalError as exc:
        logger.warning(
            "nfe_config_erro_fiscal",
            extra={
                "event": "nfe_config",
                "tenant_id": str(tenant_id),
                "user_id": user_id,
                "code": exc.code,
                "detail": exc.message,
                "outcome": "fiscal_error",
            },
        )
        raise

    return sucesso(
        NfeConfigOutputSerializer(config).data,
        "Configuração fiscal atualizada com sucesso",
    )


@api_view(["POST"])
@parser_classes([MultiPartParser, FormParser, JSONParser])
@permission_classes([IsAuthenticated, PodeGerenciarFiscal])
def nfe_certificado_view(request):
    """
    Upload do certificado A1.

    URL final:
        POST /api/v1/fiscal/nfe/certificado/   (multipart: certificado, senha)
    """
    tenant_id = _tenant_id_from_request(request)
    user_id = getattr(request.user, "id", None)

    try:
        ser_in = CertificadoUploadSerializer(data=request.data)
        ser_in.is_valid(raise_exception=True)

        arquivo = ser_in.validated_data["certificado"]
        result = anexar_certificado(
            tenant_id=tenant_id,
            conteudo=arquivo.read(),
            senha=ser_in.validated_data["senha"],
        )

    except DRFValidationError as exc:
        logger.warning(
            "nfe_certificado_validacao",
            extra={
                "event": "nfe_certificado",
                "tenant_id": str(tenant_id),
                "user_id": user_id,
                "errors": exc.detail,
                "outcome": "validation_error",
            },
        )
        raise

    except FiscalError as exc:
        logger.warning(
            "nfe_certificado_invalido",
            extra={
                "event": "nfe_certificado",
                "tenant_id": str(tenant_id),
                "user_id": user_id,
                "code": exc.code,
                "outcome": "invalid_certificate",
            },
        )
        raise

    return sucesso(
        CertificadoOutputSerializer({"validade": result.validade, "titular": result.titular}).data,
        result.mensagem,
    )
