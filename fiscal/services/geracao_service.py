# fiscal/services/geracao_service.py

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from django.db import transaction
from django.utils import timezone

from financeiro.models import FaturaStatus
from financeiro.services.fatura_store import obter_fatura_com_itens
from fiscal.certificado import decifrar_senha, get_certificate_validator
from fiscal.exceptions import (
    CertificateExpired,
    CertificateMissing,
    ConfigIncomplete,
    DuplicateAuthorization,
    InvoiceCancelled,
    InvoiceNotFound,
)
from fiscal.models import NfeConfig, NfeDocumento, NfeStatus
from fiscal.services.auditoria_service import registrar_auditoria
from fiscal.services.chave_acesso_service import gerar_chave_acesso, gerar_codigo_numerico
from fiscal.services.nfe_xml_service import montar_xml_nfe

logger = logging.getLogger("vet.fiscal")


@dataclass
class GerarNfeResult:
    documento_id: str
    fatura_id: str
    numero: int
    serie: int
    chave_acesso: str
    status: str
    ambiente: str


def _assert_config_pronta(config: Optional[NfeConfig]) -> NfeConfig:
    """
    Bloqueia a geração se faltar dado do emitente ou certificado A1 válido.
    O A1 gravado também precisa abrir com a senha armazenada.
    """
    if config is None:
        raise ConfigIncomplete("Configuração fiscal não encontrada para o tenant.")

    if not config.cnpj or not config.inscricao_estadual:
        raise ConfigIncomplete()

    if not config.certificado_configurado:
        raise CertificateMissing()

    if config.certificado_expirado():
        raise CertificateExpired()

    get_certificate_validator().validar(
        bytes(config.certificado_data),
        decifrar_senha(config.certificado_senha),
    )

    return config


def gerar_nfe(*, tenant_id, fatura_id, user_id: Optional[int] = None) -> GerarNfeResult:
    """
    Gera uma NF-e (status pendente) para a fatura.

    Regras principais:
      - Config com CNPJ + IE + certificado A1 válido.
      - Fatura existe no tenant e não está cancelada.
      - Não pode existir NF-e autorizada para a fatura.
      - Próximo número = ultimo_numero_nfe + 1, incrementado sob lock da
        linha de configuração (select_for_update) na mesma transação que
        cria o documento: dois geradores concorrentes nunca pegam o mesmo
        número nem a mesma chave.
    """
    config = NfeConfig.objects.filter(tenant_id=tenant_id).first()
    _assert_config_pronta(config)

    fatura = obter_fatura_com_itens(tenant_id=tenant_id, fatura_id=fatura_id)
    if fatura is None:
        raise InvoiceNotFound()

    if fatura.status == FaturaStatus.CANCELADA:
        raise InvoiceCancelled()

    with transaction.atomic():
        # trava fatura e config nesta ordem
        fatura = obter_fatura_com_itens(tenant_id=tenant_id, fatura_id=fatura_id, lock=True)
        if fatura is None:
            raise InvoiceNotFound()
        config = NfeConfig.objects.select_for_update().get(pk=config.pk)

        if NfeDocumento.objects.filter(fatura_id=fatura.id, status=NfeStatus.AUTORIZADA).exists():
            raise DuplicateAuthorization()

        numero = config.ultimo_numero_nfe + 1
        config.ultimo_numero_nfe = numero
        config.save(update_fields=["ultimo_numero_nfe", "updated_at"])

        data_emissao = timezone.now()
        codigo_numerico = gerar_codigo_numerico()
        chave = gerar_chave_acesso(
            config,
            numero,
            codigo_numerico=codigo_numerico,
            data_emissao=data_emissao,
        )

        documento = NfeDocumento(
            config=config,
            fatura=fatura,
            tipo="NFe",
            numero=numero,
            serie=config.serie_nfe,
            chave_acesso=chave,
            codigo_numerico=codigo_numerico,
            data_emissao=data_emissao,
            ambiente=config.ambiente,
            status=NfeStatus.PENDENTE,
        )
        documento.xml_envio = montar_xml_nfe(fatura, config, documento)
        documento.save(force_insert=True)

        registrar_auditoria(
            tipo_evento="GERACAO",
            documento=documento,
            tenant_id=tenant_id,
            user_id=user_id,
            mensagem_retorno=f"NF-e {numero}/{documento.serie} gerada.",
        )

    logger.info(
        "nfe_gerada",
        extra={
            "event": "nfe_gerar",
            "tenant_id": str(tenant_id),
            "user_id": user_id,
            "fatura_id": str(fatura.id),
            "documento_id": str(documento.id),
            "numero": numero,
            "serie": documento.serie,
            "chave_acesso": chave,
            "outcome": "success",
        },
    )

    return GerarNfeResult(
        documento_id=str(documento.id),
        fatura_id=str(fatura.id),
        numero=numero,
        serie=documento.serie,
        chave_acesso=chave,
        status=documento.status,
        ambiente=documento.ambiente,
    )
