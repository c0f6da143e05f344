"""
Camada de Serviço do Aluno

Somente leitura: tudo que o aluno vê vem das notas e presenças lançadas
pelos professores.
"""

from etda.core import consultas, notas
from etda.core.erros import ErroNaoEncontrado


def carregar_aluno(aluno_id: str) -> dict:
    aluno = consultas.obter_aluno(aluno_id)
    if aluno is None:
        raise ErroNaoEncontrado(
            "Seu cadastro de aluno ainda não foi concluído. Procure a secretaria da escola."
        )
    return aluno


def painel(aluno_id: str) -> dict:
    """Dados do dashboard: aluno, quantidade de notas, total de faltas e média geral."""
    aluno = carregar_aluno(aluno_id)
    lancamentos = consultas.notas_do_aluno(aluno_id)
    final = notas.situacao_final(lancamentos)
    return {
        'aluno': aluno,
        'total_notas': len(lancamentos),
        'total_faltas': sum((n.get('absences') or 0) for n in lancamentos),
        'media_geral': final['average'],
    }


def notas_por_disciplina(aluno_id: str) -> list:
    """
    Notas agrupadas por disciplina, em ordem alfabética.

    Cada item: {'subject_name': str, 'notas': [lançamentos do bimestre]}
    """
    carregar_aluno(aluno_id)
    grupos = {}
    for nota in consultas.notas_do_aluno(aluno_id):
        grupos.setdefault(nota['subject_name'], []).append(nota)
    return [
        {'subject_name': nome, 'notas': sorted(itens, key=lambda n: n['bimester_name'])}
        for nome, itens in sorted(grupos.items())
    ]


def faltas(aluno_id: str) -> dict:
    carregar_aluno(aluno_id)
    grupos = notas.agrupar_faltas(consultas.faltas_do_aluno(aluno_id))
    return {
        'grupos': grupos,
        'total': sum(g['absences'] for g in grupos),
    }


def situacao(aluno_id: str) -> dict:
    """Média final, situação final e o resumo por disciplina."""
    carregar_aluno(aluno_id)
    lancamentos = consultas.notas_do_aluno(aluno_id)
    final = notas.situacao_final(lancamentos)
    return {
        'media_final': final['average'],
        'situacao_final': final['status'],
        'disciplinas': notas.resumo_por_disciplina(lancamentos),
    }
