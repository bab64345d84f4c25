# fiscal/permissions.py
from rest_framework.permissions import SAFE_METHODS

from tenants.permissions import IsTenantMember, requer_recurso

RECURSO_NFE = "nfe"
PERMISSAO_GERENCIAR_FISCAL = "manage_fiscal"
PERMISSAO_EMITIR = "create_invoice"


# Leitura de documentos / status / XML
PodeConsultarNfe = requer_recurso(RECURSO_NFE)

# Geração, transmissão e cancelamento
PodeEmitirNfe = requer_recurso(RECURSO_NFE, PERMISSAO_EMITIR)

# Upload de certificado
PodeGerenciarFiscal = requer_recurso(RECURSO_NFE, PERMISSAO_GERENCIAR_FISCAL)


class NfeConfigPermission(IsTenantMember):
    """
    Leitura da configuração fiscal: qualquer membro do tenant com o recurso nfe.
    Alteração: exige manage_fiscal.
    """

    recurso = RECURSO_NFE

    def has_permission(self, request, view) -> bool:
        self.permissao = None if request.method in SAFE_METHODS else PERMISSAO_GERENCIAR_FISCAL
        return super().has_permission(request, view)
