# fiscal/exceptions.py
"""
Erros de domínio do módulo fiscal.

Todos herdam de APIException do DRF, com detail no formato
{"code": "FISCAL_xxxx", "message": "..."}; as services levantam e as
views apenas registram log e repassam.
"""

from __future__ import annotations

from typing import Any, Dict, Optional

from rest_framework import status
from rest_framework.exceptions import APIException

# Códigos de erro do domínio
ERR_CONFIG_INCOMPLETA = "FISCAL_3001"
ERR_CERTIFICADO_AUSENTE = "FISCAL_3002"
ERR_CERTIFICADO_EXPIRADO = "FISCAL_3003"
ERR_CERTIFICADO_INVALIDO = "FISCAL_3004"
ERR_FATURA_NAO_ENCONTRADA = "FISCAL_4041"
ERR_DOCUMENTO_NAO_ENCONTRADO = "FISCAL_4042"
ERR_FATURA_CANCELADA = "FISCAL_4001"
ERR_MOTIVO_CURTO = "FISCAL_4002"
ERR_PRAZO_CANCELAMENTO = "FISCAL_4003"
ERR_CONFIG_CAMPO_INVALIDO = "FISCAL_4004"
ERR_AUTORIZACAO_DUPLICADA = "FISCAL_4091"
ERR_ESTADO_INVALIDO = "FISCAL_4092"
ERR_TENTATIVAS_ESGOTADAS = "FISCAL_4093"
ERR_SEFAZ_REJEICAO = "FISCAL_4221"
ERR_TRANSPORTE_NAO_IMPLEMENTADO = "FISCAL_5011"
ERR_SEFAZ_INDISPONIVEL = "FISCAL_5031"


class FiscalError(APIException):
    status_code = status.HTTP_400_BAD_REQUEST
    code = "FISCAL_4000"
    default_message = "Erro fiscal."

    def __init__(self, message: Optional[str] = None, **context: Any):
        self.message = message or self.default_message
        self.context: Dict[str, Any] = context
        super().__init__(detail={"code": self.code, "message": self.message})

    def __str__(self):
        return f"{self.code}: {self.message}"


class ConfigIncomplete(FiscalError):
    code = ERR_CONFIG_INCOMPLETA
    default_message = "Configuração fiscal incompleta: informe CNPJ e Inscrição Estadual."


class InvalidConfigField(FiscalError):
    code = ERR_CONFIG_CAMPO_INVALIDO
    default_message = "Campo de configuração fiscal inválido."


class CertificateMissing(FiscalError):
    code = ERR_CERTIFICADO_AUSENTE
    default_message = "Certificado A1 não configurado. Emissão bloqueada."


class CertificateExpired(CertificateMissing):
    code = ERR_CERTIFICADO_EXPIRADO
    default_message = "Certificado A1 expirado. Emissão bloqueada."


class InvalidCertificate(FiscalError):
    code = ERR_CERTIFICADO_INVALIDO
    default_message = "Arquivo de certificado inválido ou senha incorreta."


class InvoiceNotFound(FiscalError):
    status_code = status.HTTP_404_NOT_FOUND
    code = ERR_FATURA_NAO_ENCONTRADA
    default_message = "Fatura não encontrada."


class DocumentNotFound(FiscalError):
    status_code = status.HTTP_404_NOT_FOUND
    code = ERR_DOCUMENTO_NAO_ENCONTRADO
    default_message = "Documento NF-e não encontrado."


class InvoiceCancelled(FiscalError):
    code = ERR_FATURA_CANCELADA
    default_message = "Não é possível emitir NF-e para fatura cancelada."


class DuplicateAuthorization(FiscalError):
    status_code = status.HTTP_409_CONFLICT
    code = ERR_AUTORIZACAO_DUPLICADA
    default_message = "Já existe NF-e autorizada para esta fatura."


class InvalidState(FiscalError):
    status_code = status.HTTP_409_CONFLICT
    code = ERR_ESTADO_INVALIDO
    default_message = "Operação não permitida no status atual do documento."


class AttemptsExhausted(InvalidState):
    code = ERR_TENTATIVAS_ESGOTADAS
    default_message = "Número máximo de tentativas de transmissão atingido."


class ReasonTooShort(FiscalError):
    code = ERR_MOTIVO_CURTO
    default_message = "Motivo de cancelamento muito curto (mínimo 15 caracteres)."


class CancellationWindowExpired(FiscalError):
    code = ERR_PRAZO_CANCELAMENTO
    default_message = "Prazo de cancelamento expirado (máximo 24 horas após a autorização)."


class AuthorityRejected(FiscalError):
    """
    SEFAZ recusou o documento/evento. Carrega o código e a mensagem da SEFAZ.
    """

    status_code = status.HTTP_422_UNPROCESSABLE_ENTITY
    code = ERR_SEFAZ_REJEICAO
    default_message = "Documento rejeitado pela SEFAZ."

    def __init__(self, message=None, *, codigo_sefaz: str = "", mensagem_sefaz: str = "", **context):
        self.codigo_sefaz = codigo_sefaz
        self.mensagem_sefaz = mensagem_sefaz
        super().__init__(
            message or f"Rejeição {codigo_sefaz}: {mensagem_sefaz}",
            codigo_sefaz=codigo_sefaz,
            **context,
        )
        self.detail["codigo_sefaz"] = codigo_sefaz
        self.detail["mensagem_sefaz"] = mensagem_sefaz


class AuthorityUnavailable(FiscalError):
    """
    Falha técnica (timeout, conexão, SEFAZ fora do ar). Pode ser retentada.
    """

    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    code = ERR_SEFAZ_INDISPONIVEL
    default_message = "SEFAZ indisponível. Tente novamente mais tarde."
    retryable = True


class TransportNotImplemented(FiscalError):
    status_code = status.HTTP_501_NOT_IMPLEMENTED
    code = ERR_TRANSPORTE_NAO_IMPLEMENTADO
    default_message = "Transmissão para SEFAZ em produção ainda não implementada."
