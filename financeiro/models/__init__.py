from .financeiro_models import (
    Cliente,
    Fatura,
    FaturaItem,
    FaturaStatus,
    FaturaStatusFiscal,
    FormaPagamento,
)

__all__ = [
    "Cliente",
    "Fatura",
    "FaturaItem",
    "FaturaStatus",
    "FaturaStatusFiscal",
    "FormaPagamento",
]
