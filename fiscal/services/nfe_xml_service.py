# fiscal/services/nfe_xml_service.py
"""
Montagem do XML de envio da NF-e (layout 4.00, subconjunto).

Blocos gerados: ide, emit, dest, det (um por item da fatura), total,
transp, pag e infAdic. Não assina nem persiste nada: recebe fatura,
configuração e documento e devolve o XML como string.
"""

from __future__ import annotations

import re
from decimal import Decimal, ROUND_HALF_UP

from django.utils import timezone
from lxml import etree

from fiscal.models import NfeAmbiente, RegimeTributario
from fiscal.uf import codigo_uf, get_uf_config

NFE_NAMESPACE = "http://www.portalfiscal.inf.br/nfe"
NSMAP = {None: NFE_NAMESPACE}
VERSAO_LAYOUT = "4.00"
VERSAO_PROCESSO = "vet-fiscal 1.0"

MUNICIPIO_PADRAO = "3550308"  # São Paulo/SP
MUNICIPIO_EXTERIOR_OU_NAO_INFORMADO = "9999999"
CFOP_SERVICO = "5933"  # prestação de serviço tributado pelo ISSQN

# Limites de tamanho dos campos de texto livre
MAX_XNOME = 60
MAX_XLGR = 60
MAX_NRO = 60
MAX_XBAIRRO = 60
MAX_XMUN = 60
MAX_CPROD = 60
MAX_XPROD = 120
MAX_INFCPL = 5000

CRT_POR_REGIME = {
    RegimeTributario.SIMPLES_NACIONAL: "1",
    RegimeTributario.SIMPLES_NACIONAL_EXCESSO: "2",
    RegimeTributario.LUCRO_PRESUMIDO: "3",
    RegimeTributario.LUCRO_REAL: "3",
}

TPAG_POR_FORMA = {
    "cash": "01",
    "check": "02",
    "card": "03",
    "bank_transfer": "03",
    "pix": "17",
}
TPAG_OUTROS = "99"

# caracteres proibidos em XML 1.0
_CARACTERES_INVALIDOS_XML = re.compile(r"[\x00-\x08\x0b\x0c\x0e-\x1f\ud800-\udfff\ufffe\uffff]")

_DUAS_CASAS = Decimal("0.01")
_QUATRO_CASAS = Decimal("0.0001")
_DEZ_CASAS = Decimal("0.0000000001")


def _dec(valor, casas: Decimal) -> str:
    if valor is None:
        valor = 0
    return str(Decimal(str(valor)).quantize(casas, rounding=ROUND_HALF_UP))


def formatar_valor(valor) -> str:
    """Valores monetários: 2 casas."""
    return _dec(valor, _DUAS_CASAS)


def formatar_quantidade(valor) -> str:
    """Quantidades: 4 casas."""
    return _dec(valor, _QUATRO_CASAS)


def formatar_valor_unitario(valor) -> str:
    """Valor unitário: 10 casas."""
    return _dec(valor, _DEZ_CASAS)


def _texto(valor, limite: int, padrao: str = "") -> str:
    texto = _CARACTERES_INVALIDOS_XML.sub("", str(valor or ""))
    texto = " ".join(texto.split()) or padrao
    return texto[:limite]


def _digitos(valor) -> str:
    return "".join(ch for ch in str(valor or "") if ch.isdigit())


def _sub(pai, tag: str, texto: str | None = None):
    el = etree.SubElement(pai, "{%s}%s" % (NFE_NAMESPACE, tag))
    if texto is not None:
        el.text = texto
    return el


def _itens_da_fatura(fatura) -> list:
    itens = getattr(fatura, "itens_carregados", None)
    if itens is None:
        itens = list(fatura.itens.all())
    return itens


def _montar_ide(inf_nfe, *, config, documento):
    chave = documento.chave_acesso
    data_emissao = timezone.localtime(documento.data_emissao)

    ide = _sub(inf_nfe, "ide")
    _sub(ide, "cUF", codigo_uf(config.uf))
    _sub(ide, "cNF", documento.codigo_numerico or chave[35:43])
    _sub(ide, "natOp", _texto(config.natureza_operacao, 60, "Prestacao de Servicos Veterinarios"))
    _sub(ide, "mod", "55")
    _sub(ide, "serie", str(documento.serie))
    _sub(ide, "nNF", str(documento.numero))
    _sub(ide, "dhEmi", data_emissao.isoformat(timespec="seconds"))
    _sub(ide, "tpNF", "1")  # saída
    _sub(ide, "idDest", "1")  # operação interna
    _sub(ide, "cMunFG", _digitos(config.codigo_municipio) or MUNICIPIO_PADRAO)
    _sub(ide, "tpImp", "1")
    _sub(ide, "tpEmis", "1")
    _sub(ide, "cDV", chave[-1])
    _sub(ide, "tpAmb", "1" if config.ambiente == NfeAmbiente.PRODUCAO else "2")
    _sub(ide, "finNFe", "1")
    _sub(ide, "indFinal", "1")
    _sub(ide, "indPres", "0")
    _sub(ide, "procEmi", "0")
    _sub(ide, "verProc", VERSAO_PROCESSO)


def _montar_emit(inf_nfe, *, config):
    emit = _sub(inf_nfe, "emit")
    _sub(emit, "CNPJ", _digitos(config.cnpj).zfill(14))
    _sub(emit, "xNome", _texto(config.razao_social, MAX_XNOME))
    if config.nome_fantasia:
        _sub(emit, "xFant", _texto(config.nome_fantasia, MAX_XNOME))

    ender = _sub(emit, "enderEmit")
    _sub(ender, "xLgr", _texto(config.logradouro, MAX_XLGR))
    _sub(ender, "nro", _texto(config.numero, MAX_NRO, "S/N"))
    _sub(ender, "xBairro", _texto(config.bairro, MAX_XBAIRRO))
    _sub(ender, "cMun", _digitos(config.codigo_municipio) or MUNICIPIO_PADRAO)
    _sub(ender, "xMun", _texto(config.municipio, MAX_XMUN))
    _sub(ender, "UF", get_uf_config(config.uf).uf)
    _sub(ender, "CEP", _digitos(config.cep))
    _sub(ender, "cPais", "1058")
    _sub(ender, "xPais", "Brasil")

    _sub(emit, "IE", _digitos(config.inscricao_estadual) or "ISENTO")
    _sub(emit, "CRT", CRT_POR_REGIME.get(config.regime_tributario, "1"))


def _montar_dest(inf_nfe, *, cliente):
    dest = _sub(inf_nfe, "dest")

    documento = _digitos(getattr(cliente, "documento", ""))
    if len(documento) == 14:
        _sub(dest, "CNPJ", documento)
    elif documento:
        _sub(dest, "CPF", documento[:11])

    _sub(dest, "xNome", _texto(getattr(cliente, "nome", ""), MAX_XNOME, "CONSUMIDOR"))

    ender = _sub(dest, "enderDest")
    _sub(ender, "xLgr", _texto(getattr(cliente, "endereco", ""), MAX_XLGR, "NAO INFORMADO"))
    _sub(ender, "nro", "S/N")
    _sub(ender, "xBairro", "NAO INFORMADO")
    _sub(ender, "cMun", MUNICIPIO_EXTERIOR_OU_NAO_INFORMADO)
    _sub(ender, "xMun", _texto(getattr(cliente, "cidade", ""), MAX_XMUN, "NAO INFORMADO"))
    _sub(ender, "UF", get_uf_config(getattr(cliente, "uf", None)).uf)
    cep = _digitos(getattr(cliente, "cep", ""))
    if cep:
        _sub(ender, "CEP", cep)
    _sub(ender, "cPais", "1058")
    _sub(ender, "xPais", "Brasil")

    _sub(dest, "indIEDest", "9")  # não contribuinte


def _montar_det(inf_nfe, *, indice: int, item):
    det = _sub(inf_nfe, "det")
    det.set("nItem", str(indice))

    quantidade = formatar_quantidade(item.quantidade)
    valor_unitario = formatar_valor_unitario(item.valor_unitario)
    valor_total = formatar_valor(item.valor_total)

    prod = _sub(det, "prod")
    _sub(prod, "cProd", _texto(item.id, MAX_CPROD))
    _sub(prod, "cEAN", "SEM GTIN")
    _sub(prod, "xProd", _texto(item.descricao, MAX_XPROD, "SERVICO VETERINARIO"))
    _sub(prod, "NCM", "00000000")
    _sub(prod, "CFOP", CFOP_SERVICO)
    _sub(prod, "uCom", "UN")
    _sub(prod, "qCom", quantidade)
    _sub(prod, "vUnCom", valor_unitario)
    _sub(prod, "vProd", valor_total)
    _sub(prod, "cEANTrib", "SEM GTIN")
    _sub(prod, "uTrib", "UN")
    _sub(prod, "qTrib", quantidade)
    _sub(prod, "vUnTrib", valor_unitario)
    _sub(prod, "indTot", "1")

    imposto = _sub(det, "imposto")
    icms_sn = _sub(_sub(imposto, "ICMS"), "ICMSSN102")
    _sub(icms_sn, "orig", "0")
    _sub(icms_sn, "CSOSN", "102")

    pis_nt = _sub(_sub(imposto, "PIS"), "PISNT")
    _sub(pis_nt, "CST", "07")

    cofins_nt = _sub(_sub(imposto, "COFINS"), "COFINSNT")
    _sub(cofins_nt, "CST", "07")


def _montar_total(inf_nfe, *, fatura):
    icms_tot = _sub(_sub(inf_nfe, "total"), "ICMSTot")
    zero = formatar_valor(0)
    valores = (
        ("vBC", zero),
        ("vICMS", zero),
        ("vICMSDeson", zero),
        ("vFCP", zero),
        ("vBCST", zero),
        ("vST", zero),
        ("vFCPST", zero),
        ("vFCPSTRet", zero),
        ("vProd", formatar_valor(fatura.subtotal)),
        ("vFrete", zero),
        ("vSeg", zero),
        ("vDesc", formatar_valor(fatura.valor_desconto)),
        ("vII", zero),
        ("vIPI", zero),
        ("vIPIDevol", zero),
        ("vPIS", zero),
        ("vCOFINS", zero),
        ("vOutro", zero),
        ("vNF", formatar_valor(fatura.valor_total)),
    )
    for tag, valor in valores:
        _sub(icms_tot, tag, valor)


def _montar_pag(inf_nfe, *, fatura):
    det_pag = _sub(_sub(inf_nfe, "pag"), "detPag")
    _sub(det_pag, "tPag", TPAG_POR_FORMA.get(fatura.forma_pagamento, TPAG_OUTROS))
    _sub(det_pag, "vPag", formatar_valor(fatura.valor_total))


def montar_xml_nfe(fatura, config, documento) -> str:
    """
    Gera o XML da NF-e para a fatura, no formato esperado pela SEFAZ.

    Campos de texto são truncados nos limites do layout; o escape de
    caracteres especiais fica a cargo do lxml.
    """
    nfe = etree.Element("{%s}NFe" % NFE_NAMESPACE, nsmap=NSMAP)

    inf_nfe = _sub(nfe, "infNFe")
    inf_nfe.set("versao", VERSAO_LAYOUT)
    inf_nfe.set("Id", f"NFe{documento.chave_acesso}")

    _montar_ide(inf_nfe, config=config, documento=documento)
    _montar_emit(inf_nfe, config=config)
    _montar_dest(inf_nfe, cliente=fatura.cliente)

    for indice, item in enumerate(_itens_da_fatura(fatura), start=1):
        _montar_det(inf_nfe, indice=indice, item=item)

    _montar_total(inf_nfe, fatura=fatura)

    transp = _sub(inf_nfe, "transp")
    _sub(transp, "modFrete", "9")  # sem frete

    _montar_pag(inf_nfe, fatura=fatura)

    inf_adic = _sub(inf_nfe, "infAdic")
    _sub(inf_adic, "infCpl", _texto(f"Fatura: {fatura.numero_fatura}", MAX_INFCPL))

    return etree.tostring(nfe, encoding="unicode", pretty_print=True)
