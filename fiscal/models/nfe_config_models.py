import uuid

from django.db import models
from django.utils import timezone


class NfeAmbiente(models.TextChoices):
    HOMOLOGACAO = "homologacao", "Homologação"
    PRODUCAO = "producao", "Produção"


class RegimeTributario(models.TextChoices):
    SIMPLES_NACIONAL = "simples_nacional", "Simples Nacional"
    SIMPLES_NACIONAL_EXCESSO = "simples_nacional_excesso", "Simples Nacional - excesso de sublimite"
    LUCRO_PRESUMIDO = "lucro_presumido", "Lucro Presumido"
    LUCRO_REAL = "lucro_real", "Lucro Real"


class NfeConfig(models.Model):
    """
    Configuração fiscal de NF-e do tenant (uma por tenant).

    Guarda:
      - dados do emitente (CNPJ, IE, endereço)
      - série e contador de numeração (ultimo_numero_nfe)
      - certificado A1 (bytes do .pfx + senha cifrada + validade)

    ultimo_numero_nfe só cresce: números já usados nunca são reaproveitados.
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    tenant = models.OneToOneField(
        "tenants.Tenant",
        on_delete=models.CASCADE,
        related_name="nfe_config",
    )

    ambiente = models.CharField(
        max_length=20,
        choices=NfeAmbiente.choices,
        default=NfeAmbiente.HOMOLOGACAO,
    )

    # Emitente
    cnpj = models.CharField(max_length=14, blank=True, default="")
    inscricao_estadual = models.CharField(max_length=20, blank=True, default="")
    inscricao_municipal = models.CharField(max_length=20, blank=True, default="")
    razao_social = models.CharField(max_length=120, blank=True, default="")
    nome_fantasia = models.CharField(max_length=120, blank=True, default="")

    # Endereço do emitente
    logradouro = models.CharField(max_length=120, blank=True, default="")
    numero = models.CharField(max_length=20, blank=True, default="")
    bairro = models.CharField(max_length=60, blank=True, default="")
    codigo_municipio = models.CharField(max_length=7, blank=True, default="")
    municipio = models.CharField(max_length=60, blank=True, default="")
    uf = models.CharField(max_length=2, blank=True, default="")
    cep = models.CharField(max_length=8, blank=True, default="")

    # Parâmetros fiscais
    serie_nfe = models.PositiveIntegerField(default=1)
    serie_nfse = models.PositiveIntegerField(default=1)
    regime_tributario = models.CharField(
        max_length=30,
        choices=RegimeTributario.choices,
        default=RegimeTributario.SIMPLES_NACIONAL,
    )
    codigo_cnae = models.CharField(max_length=10, blank=True, default="")
    item_lista_servico = models.CharField(max_length=10, blank=True, default="")
    aliquota_iss = models.DecimalField(max_digits=5, decimal_places=2, null=True, blank=True)
    natureza_operacao = models.CharField(
        max_length=60,
        default="Prestacao de Servicos Veterinarios",
    )

    # Certificado A1
    certificado_data = models.BinaryField(null=True, blank=True)
    certificado_senha = models.TextField(blank=True, default="")  # cifrada (Fernet)
    certificado_validade = models.DateTimeField(null=True, blank=True)
    certificado_titular = models.CharField(max_length=255, blank=True, default="")

    ultimo_numero_nfe = models.PositiveIntegerField(default=0)

    created_at = models.DateTimeField(default=timezone.now)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = "nfe_config"

    def __str__(self):
        return f"NfeConfig tenant={self.tenant_id} cnpj={self.cnpj} ({self.ambiente})"

    @property
    def certificado_configurado(self) -> bool:
        return bool(self.certificado_data)

    def certificado_expirado(self, agora=None) -> bool:
        if not self.certificado_validade:
            return False
        return self.certificado_validade <= (agora or timezone.now())
