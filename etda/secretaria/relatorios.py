"""
Relatórios da Secretaria

Métricas do dashboard, resumo geral de notas, consulta do histórico de um
aluno e geração dos relatórios em CSV.
"""

import csv
import io

from etda.core import consultas, notas
from etda.core.constants import (
    COL_ALUNOS,
    COL_PROFESSORES,
    COL_BIMESTRES,
    COL_NOTAS,
    BIMESTRE_ATIVO,
    APROVADO,
    RECUPERACAO,
    REPROVADO,
    STATUS,
    RELATORIOS,
)
from etda.core.erros import ErroNaoEncontrado


def metricas_dashboard() -> dict:
    turmas = consultas.listar_turmas()
    alunos = consultas.listar(COL_ALUNOS)

    por_turma = {}
    for aluno in alunos:
        turma_id = aluno.get('class_id')
        if not turma_id:
            continue
        por_turma[turma_id] = por_turma.get(turma_id, 0) + 1

    return {
        'total_alunos': len(alunos),
        'total_professores': len(consultas.listar(COL_PROFESSORES)),
        'total_disciplinas': len(consultas.listar_disciplinas()),
        'bimestres_ativos': len(consultas.filtrar(COL_BIMESTRES, 'status', BIMESTRE_ATIVO)),
        'turmas': [
            {'id': t['id'], 'name': t['name'], 'alunos': por_turma.get(t['id'], 0)}
            for t in turmas
        ],
    }


def resumo_geral() -> dict:
    resumo = notas.estatisticas_notas(consultas.listar(COL_NOTAS))
    resumo['total_alunos'] = len(consultas.listar(COL_ALUNOS))
    resumo['total_disciplinas'] = len(consultas.listar_disciplinas())
    return resumo


def consultar_aluno(aluno_id: str) -> dict:
    """Notas e faltas (agrupadas por disciplina + bimestre) de um aluno."""
    aluno = consultas.obter_aluno(aluno_id)
    if aluno is None:
        raise ErroNaoEncontrado("Aluno não encontrado.")
    return {
        'aluno': aluno,
        'notas': consultas.notas_do_aluno(aluno_id),
        'faltas': notas.agrupar_faltas(consultas.faltas_do_aluno(aluno_id)),
    }


# === CSV ===

# Início de célula que o Excel interpreta como fórmula
PREFIXOS_FORMULA = ('=', '+', '-', '@', '\t', '\r')


def _texto(valor) -> str:
    """Texto digitado por usuário, neutralizado contra injeção de fórmula."""
    texto = '' if valor is None else str(valor)
    if len(texto) > 1 and texto.startswith(PREFIXOS_FORMULA):
        return "'" + texto
    return texto


def _formatar_numero(valor) -> str:
    if valor is None:
        return ''
    return f"{float(valor):.1f}"


def _linhas_alunos():
    yield ['Nome', 'Email', 'CPF', 'Data de Nascimento', 'Turma']
    for aluno in consultas.listar_alunos():
        yield [
            _texto(aluno['name']),
            _texto(aluno['email']),
            _texto(aluno['cpf']),
            aluno.get('birth_date') or '',
            _texto(aluno.get('class_name')),
        ]


def _linhas_notas():
    yield ['Aluno', 'Disciplina', 'Bimestre', 'Nota 1', 'Nota 2', 'Faltas', 'Média', 'Situação']
    alunos = consultas.mapa_por_id(consultas.listar_alunos())
    disciplinas = consultas.mapa_por_id(consultas.listar_disciplinas())
    bimestres = consultas.mapa_por_id(consultas.listar(COL_BIMESTRES))

    linhas = []
    for nota in consultas.listar(COL_NOTAS):
        aluno = alunos.get(nota.get('student_id'), {})
        disciplina = disciplinas.get(nota.get('subject_id'), {})
        bimestre = bimestres.get(nota.get('bimester_id'), {})
        linhas.append([
            _texto(aluno.get('name', '-')),
            _texto(disciplina.get('name', '-')),
            bimestre.get('name', '-'),
            _formatar_numero(nota.get('grade1')),
            _formatar_numero(nota.get('grade2')),
            nota.get('absences') or 0,
            _formatar_numero(nota.get('average')),
            STATUS.get(nota.get('status'), {}).get('rotulo', ''),
        ])
    yield from sorted(linhas, key=lambda l: (l[1], l[2], l[0]))


def _linhas_aprovacao():
    yield ['Disciplina', 'Lançamentos', 'Aprovados', 'Recuperação', 'Reprovados', 'Taxa de Aprovação (%)']
    por_disciplina = {}
    for nota in consultas.listar(COL_NOTAS):
        por_disciplina.setdefault(nota.get('subject_id'), []).append(nota.get('status'))

    for disciplina in consultas.listar_disciplinas():
        situacoes = por_disciplina.get(disciplina['id'], [])
        total = len(situacoes)
        aprovados = situacoes.count(APROVADO)
        taxa = f"{aprovados / total * 100:.1f}" if total else '-'
        yield [_texto(disciplina['name']), total, aprovados, situacoes.count(RECUPERACAO), situacoes.count(REPROVADO), taxa]


def _linhas_disciplinas():
    yield ['Disciplina', 'Carga Horária (horas)']
    for disciplina in consultas.listar_disciplinas():
        yield [_texto(disciplina['name']), disciplina.get('workload', '')]


GERADORES = {
    'alunos': _linhas_alunos,
    'notas': _linhas_notas,
    'aprovacao': _linhas_aprovacao,
    'disciplinas': _linhas_disciplinas,
}


def gerar_csv(tipo: str) -> tuple:
    """
    Gera o relatório 'tipo' em CSV (separador ';', padrão do Excel pt-BR).

    Returns:
        tuple: (nome_arquivo, conteudo)

    Raises:
        ErroNaoEncontrado: tipo de relatório desconhecido.
    """
    if tipo not in GERADORES or tipo not in RELATORIOS:
        raise ErroNaoEncontrado(f"Relatório '{tipo}' não existe.")

    saida = io.StringIO()
    escritor = csv.writer(saida, delimiter=';')
    escritor.writerows(GERADORES[tipo]())
    return f"relatorio_{tipo}.csv", saida.getvalue()
