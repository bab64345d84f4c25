# fiscal/services/config_service.py

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, Optional

from django.db import transaction

from fiscal.certificado import CertificateValidator, cifrar_senha, get_certificate_validator
from fiscal.exceptions import InvalidConfigField
from fiscal.services.chave_acesso_service import SERIE_MAXIMA
from fiscal.models import NfeAmbiente, NfeConfig, RegimeTributario
from fiscal.uf import uf_valida

logger = logging.getLogger("vet.fiscal")


# Campos que o tenant pode editar via update. Contador e certificado ficam de fora.
CAMPOS_EDITAVEIS = (
    "ambiente",
    "cnpj",
    "inscricao_estadual",
    "inscricao_municipal",
    "razao_social",
    "nome_fantasia",
    "logradouro",
    "numero",
    "bairro",
    "codigo_municipio",
    "municipio",
    "uf",
    "cep",
    "serie_nfe",
    "serie_nfse",
    "regime_tributario",
    "codigo_cnae",
    "item_lista_servico",
    "aliquota_iss",
    "natureza_operacao",
)

_CAMPOS_SO_DIGITOS = ("cnpj", "inscricao_estadual", "codigo_municipio", "cep")


@dataclass
class CertificadoAnexadoResult:
    validade: datetime
    titular: str
    mensagem: str = "Certificado carregado com sucesso"


def _somente_digitos(valor: Any) -> str:
    return "".join(ch for ch in str(valor or "") if ch.isdigit())


def obter_ou_criar_config(*, tenant_id) -> NfeConfig:
    """
    Retorna a configuração fiscal do tenant, criando uma padrão
    (homologação, contador zerado) no primeiro acesso.
    """
    config, created = NfeConfig.objects.get_or_create(
        tenant_id=tenant_id,
        defaults={"ambiente": NfeAmbiente.HOMOLOGACAO, "ultimo_numero_nfe": 0},
    )
    if created:
        logger.info(
            "nfe_config_criada",
            extra={"event": "nfe_config", "tenant_id": str(tenant_id), "outcome": "created"},
        )
    return config


_CAMPOS_SERIE = ("serie_nfe", "serie_nfse")


def _serie_valida(nome: str, valor: Any) -> int:
    try:
        serie = int(valor)
    except (TypeError, ValueError):
        raise InvalidConfigField(f"Série inválida: {valor}.", campo=nome)

    if not 0 <= serie <= SERIE_MAXIMA:
        raise InvalidConfigField(f"Série deve estar entre 0 e {SERIE_MAXIMA}.", campo=nome)
    return serie


def _normalizar_campos(dados: Dict[str, Any]) -> Dict[str, Any]:
    desconhecidos = sorted(set(dados) - set(CAMPOS_EDITAVEIS))
    if desconhecidos:
        raise InvalidConfigField(
            f"Campos não editáveis na configuração fiscal: {', '.join(desconhecidos)}.",
            campos=desconhecidos,
        )

    campos: Dict[str, Any] = {}
    for nome, valor in dados.items():
        if valor is None:
            # update parcial: None significa "não alterar"
            continue

        if nome in _CAMPOS_SO_DIGITOS:
            valor = _somente_digitos(valor)
        elif nome == "uf":
            valor = str(valor).strip().upper()
            if valor and not uf_valida(valor):
                raise InvalidConfigField(f"UF inválida: {valor}.", campo="uf")
        elif nome == "ambiente" and valor not in NfeAmbiente.values:
            raise InvalidConfigField(f"Ambiente inválido: {valor}.", campo="ambiente")
        elif nome == "regime_tributario" and valor not in RegimeTributario.values:
            raise InvalidConfigField(f"Regime tributário inválido: {valor}.", campo="regime_tributario")
        elif nome in _CAMPOS_SERIE:
            valor = _serie_valida(nome, valor)

        if nome == "cnpj" and valor and len(valor) != 14:
            raise InvalidConfigField("CNPJ deve conter 14 dígitos.", campo="cnpj")

        campos[nome] = valor

    return campos


@transaction.atomic
def atualizar_config(*, tenant_id, dados: Dict[str, Any]) -> NfeConfig:
    """
    Atualiza (upsert) a configuração fiscal do tenant.

    Só os campos informados são alterados. Contador de numeração e dados
    do certificado não podem ser mexidos por aqui.
    """
    campos = _normalizar_campos(dados)

    config = obter_ou_criar_config(tenant_id=tenant_id)
    config = NfeConfig.objects.select_for_update().get(pk=config.pk)

    for nome, valor in campos.items():
        setattr(config, nome, valor)

    if campos:
        config.save(update_fields=[*campos.keys(), "updated_at"])

    logger.info(
        "nfe_config_atualizada",
        extra={
            "event": "nfe_config",
            "tenant_id": str(tenant_id),
            "campos": sorted(campos.keys()),
            "outcome": "updated",
        },
    )
    return config


@transaction.atomic
def anexar_certificado(
    *,
    tenant_id,
    conteudo: bytes,
    senha: str,
    validator: Optional[CertificateValidator] = None,
) -> CertificadoAnexadoResult:
    """
    Valida e grava o certificado A1 (.pfx/.p12) do tenant.

    - Conteúdo que não abre como PKCS#12 com a senha -> InvalidCertificate.
    - A senha é gravada cifrada; a validade vem do próprio certificado.
    """
    validator = validator or get_certificate_validator()
    info = validator.validar(conteudo, senha)

    config = obter_ou_criar_config(tenant_id=tenant_id)
    config = NfeConfig.objects.select_for_update().get(pk=config.pk)

    config.certificado_data = conteudo
    config.certificado_senha = cifrar_senha(senha)
    config.certificado_validade = info.validade
    config.certificado_titular = info.titular
    config.save(
        update_fields=[
            "certificado_data",
            "certificado_senha",
            "certificado_validade",
            "certificado_titular",
            "updated_at",
        ]
    )

    logger.info(
        "nfe_certificado_anexado",
        extra={
            "event": "nfe_certificado",
            "tenant_id": str(tenant_id),
            "titular": info.titular,
            "validade": info.validade.isoformat(),
            "outcome": "success",
        },
    )

    return CertificadoAnexadoResult(validade=info.validade, titular=info.titular)
