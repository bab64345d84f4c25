import uuid

from django.db import models


class Tenant(models.Model):
    """
    Clínica veterinária (conta) isolada por tenant_id em todas as tabelas.

    `recursos` guarda os módulos habilitados no plano da conta (ex: ["nfe"]).
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    nome = models.CharField(max_length=150)
    documento = models.CharField(max_length=14, unique=True)  # CNPJ/CPF só dígitos
    ativo = models.BooleanField(default=True)
    recursos = models.JSONField(default=list, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = "tenant"

    def __str__(self):
        return f"{self.nome} ({self.documento})"

    def tem_recurso(self, recurso: str) -> bool:
        return recurso in (self.recursos or [])


class TenantUsuario(models.Model):
    """
    Vínculo usuário x tenant.

    O usuário é referenciado só por id (sem FK para a tabela de auth),
    o que mantém o app independente do modelo de usuário.
    """

    tenant = models.ForeignKey(Tenant, on_delete=models.CASCADE, related_name="usuarios")
    user_id = models.IntegerField()
    is_admin = models.BooleanField(default=False)
    permissoes = models.JSONField(default=list, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = "tenant_usuario"
        unique_together = ("tenant", "user_id")

    def __str__(self):
        return f"user={self.user_id} tenant={self.tenant_id}"

    def tem_permissao(self, permissao: str) -> bool:
        return self.is_admin or permissao in (self.permissoes or [])
