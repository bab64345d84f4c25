# financeiro/models/financeiro_models.py

import uuid
from decimal import Decimal

from django.db import models


def _somente_digitos(valor: str) -> str:
    return "".join(ch for ch in (valor or "") if ch.isdigit())


class Cliente(models.Model):
    """
    Tutor/cliente da clínica. Destinatário das notas fiscais.
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    tenant = models.ForeignKey("tenants.Tenant", on_delete=models.CASCADE, related_name="clientes")

    nome = models.CharField(max_length=150)
    documento = models.CharField(max_length=14, blank=True, default="")  # CPF/CNPJ
    email = models.EmailField(blank=True, default="")
    endereco = models.CharField(max_length=255, blank=True, default="")
    cidade = models.CharField(max_length=60, blank=True, default="")
    uf = models.CharField(max_length=2, blank=True, default="")
    cep = models.CharField(max_length=8, blank=True, default="")

    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = "financeiro_cliente"
        indexes = [models.Index(fields=["tenant", "nome"])]

    def __str__(self):
        return self.nome

    def save(self, *args, **kwargs):
        self.documento = _somente_digitos(self.documento)
        self.cep = _somente_digitos(self.cep)
        super().save(*args, **kwargs)


class FaturaStatus(models.TextChoices):
    RASCUNHO = "draft", "Rascunho"
    PENDENTE = "pending", "Pendente"
    PAGA = "paid", "Paga"
    CANCELADA = "cancelled", "Cancelada"


class FaturaStatusFiscal(models.TextChoices):
    AUTORIZADA = "authorized", "NF-e autorizada"
    CANCELADA = "cancelled", "NF-e cancelada"


class FormaPagamento(models.TextChoices):
    DINHEIRO = "cash", "Dinheiro"
    CARTAO = "card", "Cartão"
    PIX = "pix", "PIX"
    TRANSFERENCIA = "bank_transfer", "Transferência bancária"
    CHEQUE = "check", "Cheque"
    OUTROS = "other", "Outros"


class Fatura(models.Model):
    """
    Fatura de atendimento veterinário.

    O módulo fiscal só lê a fatura (itens, cliente, totais) e escreve
    status_fiscal/numero_fiscal quando uma NF-e é autorizada ou cancelada.
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    tenant = models.ForeignKey("tenants.Tenant", on_delete=models.CASCADE, related_name="faturas")
    cliente = models.ForeignKey(Cliente, on_delete=models.PROTECT, related_name="faturas")

    numero_fatura = models.CharField(max_length=30)
    status = models.CharField(
        max_length=20,
        choices=FaturaStatus.choices,
        default=FaturaStatus.PENDENTE,
    )
    forma_pagamento = models.CharField(
        max_length=20,
        choices=FormaPagamento.choices,
        default=FormaPagamento.DINHEIRO,
    )

    subtotal = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))
    valor_desconto = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))
    valor_total = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))

    status_fiscal = models.CharField(
        max_length=20,
        choices=FaturaStatusFiscal.choices,
        null=True,
        blank=True,
    )
    numero_fiscal = models.PositiveIntegerField(null=True, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = "financeiro_fatura"
        unique_together = (("tenant", "numero_fatura"),)

    def __str__(self):
        return f"Fatura {self.numero_fatura} ({self.status})"


class FaturaItem(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    fatura = models.ForeignKey(Fatura, on_delete=models.CASCADE, related_name="itens")

    ordem = models.PositiveIntegerField(default=0)
    descricao = models.CharField(max_length=255)
    quantidade = models.DecimalField(max_digits=12, decimal_places=4, default=Decimal("1.0000"))
    valor_unitario = models.DecimalField(max_digits=16, decimal_places=6)
    valor_total = models.DecimalField(max_digits=12, decimal_places=2)

    class Meta:
        db_table = "financeiro_fatura_item"
        ordering = ["ordem", "id"]

    def __str__(self):
        return f"{self.descricao} x {self.quantidade}"
