# financeiro/services/fatura_store.py

from __future__ import annotations

import logging
from typing import Optional

from django.core.exceptions import ValidationError

from financeiro.models import Fatura

logger = logging.getLogger("vet.financeiro")


def obter_fatura_com_itens(*, tenant_id, fatura_id, lock: bool = False) -> Optional[Fatura]:
    """
    Retorna a fatura do tenant com cliente e itens carregados, ou None
    (inclusive para ids que não são UUID).

    lock=True trava a linha da fatura (select_for_update); só faz sentido
    dentro de transaction.atomic.
    """
    try:
        qs = Fatura.objects.select_related("cliente").filter(id=fatura_id, tenant_id=tenant_id)
        if lock:
            qs = qs.select_for_update(of=("self",))
        fatura = qs.first()
    except ValidationError:
        # id que não é UUID
        return None

    if fatura is None:
        return None

    # força o carregamento dos itens em ordem estável
    fatura.itens_carregados = list(fatura.itens.all())
    return fatura


def definir_status_fiscal(*, fatura_id, status: str, numero_fiscal: Optional[int] = None) -> None:
    """
    Atualiza status_fiscal (e número fiscal, quando informado) da fatura.
    """
    campos = {"status_fiscal": status}
    if numero_fiscal is not None:
        campos["numero_fiscal"] = numero_fiscal

    atualizadas = Fatura.objects.filter(id=fatura_id).update(**campos)

    logger.info(
        "fatura_status_fiscal_atualizado",
        extra={
            "event": "fatura_status_fiscal",
            "fatura_id": str(fatura_id),
            "status_fiscal": status,
            "numero_fiscal": numero_fiscal,
            "linhas": atualizadas,
        },
    )
