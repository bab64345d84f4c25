from .nfe_config_models import NfeAmbiente, NfeConfig, RegimeTributario
from .nfe_models import NfeAuditoria, NfeDocumento, NfeStatus


__all__ = [
    "NfeAmbiente",
    "NfeConfig",
    "RegimeTributario",
    "NfeStatus",
    "NfeDocumento",
    "NfeAuditoria",
]
