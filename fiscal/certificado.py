# fiscal/certificado.py
"""
Certificado digital A1 (PKCS#12) do emitente.

- CertificateValidator: contrato plugável usado pela service de configuração.
- Pkcs12CertificateValidator: implementação padrão (cryptography), só abre o
  container e lê validade/titular. Não assina nada.
- cifrar_senha / decifrar_senha: a senha do .pfx nunca é gravada em claro.
"""

from __future__ import annotations

import base64
import hashlib
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Protocol

from cryptography.fernet import Fernet, InvalidToken
from cryptography.hazmat.primitives.serialization import pkcs12
from cryptography.x509.oid import NameOID
from django.conf import settings
from django.utils.module_loading import import_string

from fiscal.exceptions import InvalidCertificate

logger = logging.getLogger("vet.fiscal")


@dataclass
class CertificadoInfo:
    validade: datetime
    titular: str
    numero_serie: str


class CertificateValidator(Protocol):
    def validar(self, conteudo: bytes, senha: str) -> CertificadoInfo:
        """
        Deve levantar InvalidCertificate se o conteúdo não for um PKCS#12
        legível com a senha informada.
        """
        ...


class Pkcs12CertificateValidator:
    """
    Abre o .pfx/.p12 com a senha e extrai os metadados do certificado.
    """

    def validar(self, conteudo: bytes, senha: str) -> CertificadoInfo:
        if not conteudo:
            raise InvalidCertificate("Arquivo de certificado vazio.")

        try:
            _chave, certificado, _cadeia = pkcs12.load_key_and_certificates(
                conteudo, (senha or "").encode()
            )
        except (ValueError, TypeError) as exc:
            logger.warning(
                "certificado_invalido",
                extra={"event": "certificado_validar", "error": str(exc)},
            )
            raise InvalidCertificate() from exc

        if certificado is None:
            raise InvalidCertificate("Container PKCS#12 não contém certificado.")

        return CertificadoInfo(
            validade=_validade_utc(certificado),
            titular=_titular(certificado),
            numero_serie=format(certificado.serial_number, "x"),
        )


def _validade_utc(certificado) -> datetime:
    return certificado.not_valid_after_utc


def _titular(certificado) -> str:
    nomes = certificado.subject.get_attributes_for_oid(NameOID.COMMON_NAME)
    if nomes:
        return str(nomes[0].value)
    return certificado.subject.rfc4514_string()


def get_certificate_validator() -> CertificateValidator:
    caminho = getattr(
        settings,
        "NFE_CERTIFICATE_VALIDATOR",
        "fiscal.certificado.Pkcs12CertificateValidator",
    )
    return import_string(caminho)()


def _fernet() -> Fernet:
    segredo = getattr(settings, "NFE_CERTIFICADO_SECRET", None) or settings.SECRET_KEY
    chave = base64.urlsafe_b64encode(hashlib.sha256(segredo.encode()).digest())
    return Fernet(chave)


def cifrar_senha(senha: str) -> str:
    return _fernet().encrypt((senha or "").encode()).decode()


def decifrar_senha(senha_cifrada: str) -> str:
    try:
        return _fernet().decrypt(senha_cifrada.encode()).decode()
    except InvalidToken as exc:
        raise InvalidCertificate("Senha do certificado não pode ser decifrada.") from exc
