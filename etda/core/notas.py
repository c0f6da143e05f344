"""
Cálculo de Notas (Core)

Média bimestral, situação (aprovado / recuperação / reprovado) e os
agregados usados pelos dashboards, relatórios e pela situação final.
Funções puras: recebem e devolvem dicts no formato das coleções
'grades' e 'attendance'.
"""

import math
import re
from typing import Iterable, Optional

from .constants import (
    APROVADO,
    RECUPERACAO,
    REPROVADO,
    NOTA_APROVACAO,
    NOTA_RECUPERACAO,
    NOTA_MINIMA,
    NOTA_MAXIMA,
)
from .erros import ErroValidacao

# Somente dígitos ASCII; a nota aceita uma casa decimal com vírgula ou ponto
PADRAO_NOTA = re.compile(r"\d+([.,]\d+)?", re.ASCII)
PADRAO_FALTAS = re.compile(r"\d+", re.ASCII)


def calcular_media(nota1: float, nota2: float) -> float:
    return (nota1 + nota2) / 2


def arredondar(valor) -> float:
    """
    Arredonda para uma casa decimal, com meio para cima (4.95 -> 5.0).

    Valores não finitos (None, NaN, inf) contam como 0.
    """
    try:
        numero = float(valor)
    except (TypeError, ValueError):
        return 0.0
    if not math.isfinite(numero):
        return 0.0
    return math.floor(numero * 10 + 0.5) / 10


def calcular_situacao(media) -> str:
    total = arredondar(media)
    if total >= NOTA_APROVACAO:
        return APROVADO
    if total >= NOTA_RECUPERACAO:
        return RECUPERACAO
    return REPROVADO


def converter_nota(texto) -> float:
    """
    Converte o texto digitado ("7,5" ou "7.5") em nota entre 0 e 10.

    Raises:
        ErroValidacao: texto não numérico ou fora da faixa.
    """
    bruto = str(texto).strip()
    if not PADRAO_NOTA.fullmatch(bruto):
        raise ErroValidacao(f"Nota inválida: '{texto}'.")
    nota = float(bruto.replace(',', '.'))
    if not NOTA_MINIMA <= nota <= NOTA_MAXIMA:
        raise ErroValidacao(f"A nota deve estar entre {NOTA_MINIMA:g} e {NOTA_MAXIMA:g}.")
    return nota


def converter_faltas(texto) -> int:
    bruto = str(texto).strip()
    if not PADRAO_FALTAS.fullmatch(bruto):
        raise ErroValidacao(f"Quantidade de faltas inválida: '{texto}'.")
    return int(bruto)


def montar_lancamento(nota1: float, nota2: float, faltas: int) -> dict:
    """Campos calculados que acompanham toda gravação em 'grades'."""
    media = calcular_media(nota1, nota2)
    return {
        'grade1': nota1,
        'grade2': nota2,
        'absences': faltas,
        'average': media,
        'status': calcular_situacao(media),
    }


def _media_das_medias(notas: list) -> Optional[float]:
    if not notas:
        return None
    return sum((n.get('average') or 0) for n in notas) / len(notas)


def resumo_por_disciplina(notas: Iterable[dict]) -> list:
    """
    Agrupa as notas do aluno por disciplina.

    Cada item: subject_id, subject_name, average (média das médias),
    absences (soma) e status.
    """
    grupos = {}
    for nota in notas:
        chave = nota.get('subject_id')
        item = grupos.setdefault(chave, {
            'subject_id': chave,
            'subject_name': nota.get('subject_name') or '-',
            'soma': 0.0,
            'quantidade': 0,
            'absences': 0,
        })
        item['soma'] += nota.get('average') or 0
        item['quantidade'] += 1
        item['absences'] += nota.get('absences') or 0

    resumo = []
    for item in grupos.values():
        media = item['soma'] / item['quantidade']
        resumo.append({
            'subject_id': item['subject_id'],
            'subject_name': item['subject_name'],
            'average': media,
            'absences': item['absences'],
            'status': calcular_situacao(media),
        })
    return sorted(resumo, key=lambda r: r['subject_name'])


def situacao_final(notas: list) -> dict:
    """
    Média final (média de todas as médias lançadas) e a situação correspondente.

    Usa os mesmos limites das notas bimestrais. Sem notas: média e status None.
    """
    media = _media_das_medias(notas)
    if media is None:
        return {'average': None, 'status': None}
    return {'average': media, 'status': calcular_situacao(media)}


def agrupar_faltas(registros: Iterable[dict]) -> list:
    """
    Conta as ausências (present == False) por disciplina + bimestre,
    mantendo a ordem em que cada par aparece pela primeira vez.
    """
    grupos = {}
    for registro in registros:
        if registro.get('present'):
            continue
        chave = f"{registro.get('subject_id')}:{registro.get('bimester_id')}"
        if chave in grupos:
            grupos[chave]['absences'] += 1
        else:
            grupos[chave] = {
                'id': chave,
                'subject_name': registro.get('subject_name') or '-',
                'bimester_name': registro.get('bimester_name') or '-',
                'absences': 1,
            }
    return list(grupos.values())


def estatisticas_notas(notas: list) -> dict:
    """
    Taxa de aprovação (%) e média geral, ambas com uma casa decimal em texto.
    '-' quando não há notas lançadas.
    """
    if not notas:
        return {'taxa_aprovacao': '-', 'media_geral': '-'}
    aprovados = sum(1 for n in notas if n.get('status') == APROVADO)
    taxa = aprovados / len(notas) * 100
    return {
        'taxa_aprovacao': f"{taxa:.1f}",
        'media_geral': f"{_media_das_medias(notas):.1f}",
    }
