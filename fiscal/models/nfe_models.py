import uuid

from django.db import models
from django.db.models import Q
from django.utils import timezone


class NfeStatus(models.TextChoices):
    PENDENTE = "pending", "Pendente"
    PROCESSANDO = "processing", "Processando"
    AUTORIZADA = "authorized", "Autorizada"
    REJEITADA = "rejected", "Rejeitada"
    CANCELADA = "cancelled", "Cancelada"


class NfeDocumento(models.Model):
    """
    Documento fiscal NF-e (modelo 55) emitido para uma fatura.

    - Um registro por combinação (config, série, número).
    - chave_acesso é única e nunca muda depois de gerada.
    - No máximo um documento autorizado por fatura (índice parcial).
    - status só muda pela NfeStateMachine.
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    config = models.ForeignKey(
        "fiscal.NfeConfig",
        on_delete=models.PROTECT,
        related_name="documentos",
    )
    fatura = models.ForeignKey(
        "financeiro.Fatura",
        on_delete=models.PROTECT,
        related_name="nfe_documentos",
    )

    tipo = models.CharField(max_length=10, default="NFe")
    numero = models.PositiveIntegerField()
    serie = models.PositiveIntegerField()

    # Chave de acesso (44 dígitos) e código numérico aleatório embutido nela
    chave_acesso = models.CharField(max_length=44, unique=True)
    codigo_numerico = models.CharField(max_length=8)
    data_emissao = models.DateTimeField(default=timezone.now)
    ambiente = models.CharField(max_length=20, default="homologacao")

    status = models.CharField(
        max_length=20,
        choices=NfeStatus.choices,
        default=NfeStatus.PENDENTE,
    )

    xml_envio = models.TextField(blank=True, null=True)

    tentativas = models.PositiveIntegerField(default=0)
    ultima_tentativa = models.DateTimeField(null=True, blank=True)

    # Retorno da SEFAZ
    codigo_status = models.CharField(max_length=10, blank=True, null=True)
    motivo_status = models.TextField(blank=True, null=True)
    protocolo = models.CharField(max_length=64, blank=True, null=True)
    data_autorizacao = models.DateTimeField(null=True, blank=True)

    # Cancelamento
    cancelada = models.BooleanField(default=False)
    motivo_cancelamento = models.TextField(blank=True, null=True)
    protocolo_cancelamento = models.CharField(max_length=64, blank=True, null=True)
    data_cancelamento = models.DateTimeField(null=True, blank=True)

    created_at = models.DateTimeField(default=timezone.now)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = "nfe_documento"
        ordering = ["-created_at"]
        constraints = [
            models.UniqueConstraint(
                fields=["config", "serie", "numero"],
                name="uniq_nfe_config_serie_numero",
            ),
            models.UniqueConstraint(
                fields=["fatura"],
                condition=Q(status="authorized"),
                name="uniq_nfe_autorizada_por_fatura",
            ),
        ]
        indexes = [
            models.Index(fields=["status"]),
            models.Index(fields=["fatura", "status"]),
        ]

    def __str__(self):
        return f"NF-e {self.numero}/{self.serie} - {self.chave_acesso} ({self.status})"

    @property
    def tenant_id(self):
        return self.config.tenant_id


class NfeAuditoria(models.Model):
    """
    Trilha de auditoria de eventos fiscais da NF-e.

    Exemplos de tipo_evento:
      - GERACAO
      - TRANSMISSAO_AUTORIZADA / TRANSMISSAO_REJEITADA / TRANSMISSAO_INDISPONIVEL
      - CANCELAMENTO / CANCELAMENTO_REJEITADO / CANCELAMENTO_INDISPONIVEL
      - PROCESSAMENTO_RECUPERADO
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    tipo_evento = models.CharField(max_length=50)

    documento = models.ForeignKey(
        "fiscal.NfeDocumento",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="auditorias",
    )

    tenant_id = models.CharField(max_length=64, blank=True, null=True)
    user_id = models.IntegerField(blank=True, null=True)

    codigo_retorno = models.CharField(max_length=128, blank=True, null=True)
    mensagem_retorno = models.TextField(blank=True, null=True)
    raw_sefaz_response = models.JSONField(blank=True, null=True)

    ambiente = models.CharField(max_length=20, blank=True, null=True)
    uf = models.CharField(max_length=2, blank=True, null=True)

    created_at = models.DateTimeField(default=timezone.now)

    class Meta:
        db_table = "nfe_auditoria"
        indexes = [
            models.Index(fields=["tipo_evento"]),
            models.Index(fields=["tenant_id"]),
        ]

    def __str__(self):
        return f"[{self.tipo_evento}] doc={self.documento_id} codigo={self.codigo_retorno}"
