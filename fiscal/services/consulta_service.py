# fiscal/services/consulta_service.py

from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import List, Optional

from django.core.exceptions import ValidationError

from fiscal.exceptions import DocumentNotFound
from fiscal.models import NfeDocumento, NfeStatus

LIMITE_PADRAO = 50
LIMITE_MAXIMO = 500


@dataclass
class NfeStatusResult:
    documento_id: str
    fatura_id: str
    numero: int
    serie: int
    chave_acesso: str
    status: str
    tentativas: int
    ultima_tentativa: Optional[str]
    codigo_status: Optional[str]
    motivo_status: Optional[str]
    protocolo: Optional[str]
    data_autorizacao: Optional[str]
    cancelada: bool
    motivo_cancelamento: Optional[str]
    protocolo_cancelamento: Optional[str]
    data_cancelamento: Optional[str]
    ambiente: str
    created_at: str


def _iso(valor) -> Optional[str]:
    return valor.isoformat() if valor else None


def _build_result_from_document(doc: NfeDocumento) -> NfeStatusResult:
    return NfeStatusResult(
        documento_id=str(doc.id),
        fatura_id=str(doc.fatura_id),
        numero=doc.numero,
        serie=doc.serie,
        chave_acesso=doc.chave_acesso,
        status=doc.status,
        tentativas=doc.tentativas,
        ultima_tentativa=_iso(doc.ultima_tentativa),
        codigo_status=doc.codigo_status,
        motivo_status=doc.motivo_status,
        protocolo=doc.protocolo,
        data_autorizacao=_iso(doc.data_autorizacao),
        cancelada=doc.cancelada,
        motivo_cancelamento=doc.motivo_cancelamento,
        protocolo_cancelamento=doc.protocolo_cancelamento,
        data_cancelamento=_iso(doc.data_cancelamento),
        ambiente=doc.ambiente,
        created_at=doc.created_at.isoformat(),
    )


def obter_documento(documento_id, *, tenant_id=None) -> NfeDocumento:
    """
    Localiza o documento (opcionalmente restrito ao tenant).
    """
    qs = NfeDocumento.objects.select_related("config", "fatura")
    if tenant_id is not None:
        qs = qs.filter(config__tenant_id=tenant_id)

    try:
        return qs.get(id=documento_id)
    except (NfeDocumento.DoesNotExist, ValidationError):
        raise DocumentNotFound()


def obter_status(documento_id, *, tenant_id=None) -> NfeStatusResult:
    """Leitura pura do estado do documento."""
    return _build_result_from_document(obter_documento(documento_id, tenant_id=tenant_id))


def listar_documentos_fatura(*, tenant_id, fatura_id) -> List[NfeStatusResult]:
    """Histórico de documentos de uma fatura, mais recente primeiro."""
    docs = (
        NfeDocumento.objects.filter(config__tenant_id=tenant_id, fatura_id=fatura_id)
        .order_by("-created_at")
    )
    return [_build_result_from_document(doc) for doc in docs]


def listar_documentos(
    *,
    tenant_id,
    status: Optional[str] = None,
    limite: Optional[int] = None,
) -> List[dict]:
    """
    Documentos do tenant (opcionalmente filtrados por status), com
    número/total da fatura e nome do cliente.
    """
    limite = min(max(int(limite or LIMITE_PADRAO), 1), LIMITE_MAXIMO)

    qs = (
        NfeDocumento.objects.select_related("fatura", "fatura__cliente")
        .filter(config__tenant_id=tenant_id)
        .order_by("-created_at")
    )
    if status:
        if status not in NfeStatus.values:
            return []
        qs = qs.filter(status=status)

    resultado = []
    for doc in qs[:limite]:
        item = asdict(_build_result_from_document(doc))
        item["fatura"] = {
            "numero_fatura": doc.fatura.numero_fatura,
            "valor_total": str(doc.fatura.valor_total),
            "cliente_nome": doc.fatura.cliente.nome,
        }
        resultado.append(item)
    return resultado


def obter_xml(documento_id, *, tenant_id=None) -> tuple[str, str]:
    """
    XML de envio para auditoria/download. Retorna (chave_acesso, xml).
    """
    doc = obter_documento(documento_id, tenant_id=tenant_id)
    if not doc.xml_envio:
        raise DocumentNotFound("XML não disponível.")
    return doc.chave_acesso, doc.xml_envio
