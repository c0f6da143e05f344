"""
Rotas do Módulo Professor

As planilhas de notas e de presença são filtradas por query string
(?disciplina=&bimestre=&turma=&data=) e gravadas por POST na mesma URL.
"""
import re

from flask import (
    render_template,
    redirect,
    url_for,
    flash,
    abort,
    request,
    jsonify
)
from google.api_core.exceptions import GoogleAPICallError

from . import professor_bp
from . import services
from etda.core import acesso, consultas
from etda.core.constants import PROFESSOR, BIMESTRE_ATIVO
from etda.core.erros import ErroAcesso, ErroNaoEncontrado, ErroValidacao, formatar_erro_backend
from etda.core.logger import get_logger

logger = get_logger(__name__)

# Campos da planilha: nota1-<aluno_id>, nota2-<aluno_id>, faltas-<aluno_id>
CAMPO_PLANILHA = re.compile(r'^(nota1|nota2|faltas)-(.+)$')
CAMPOS_NOTA = {'nota1': 'grade1', 'nota2': 'grade2', 'faltas': 'absences'}


@professor_bp.before_request
def restringir_acesso():
    return acesso.verificar_papel(PROFESSOR)


def _professor_logado() -> dict:
    return services.carregar_professor(acesso.usuario_atual()['id'])


def _filtros() -> dict:
    fonte = request.form if request.method == 'POST' else request.args
    return {
        'disciplina': fonte.get('disciplina', ''),
        'bimestre': fonte.get('bimestre', ''),
        'turma': fonte.get('turma', ''),
        'data': fonte.get('data', ''),
    }


def _contexto_planilha(professor: dict, filtros: dict) -> dict:
    """Listas dos seletores (disciplinas, bimestres da disciplina, turmas)."""
    bimestres = []
    if filtros['disciplina']:
        services.validar_contexto(professor, filtros['disciplina'])
        bimestres = consultas.listar_bimestres(filtros['disciplina'])
    bimestre = next((b for b in bimestres if b['id'] == filtros['bimestre']), None)
    return {
        'professor': professor,
        'filtros': filtros,
        'bimestres': bimestres,
        'bimestre': bimestre,
        'turmas': consultas.listar_turmas(),
    }


def _sem_cadastro(e):
    flash(str(e), "error")
    return render_template('professor/sem_cadastro.html')


# === PÁGINAS ===

@professor_bp.route('/')
def dashboard():
    try:
        professor = _professor_logado()
        bimestres = services.bimestres_do_professor(professor)
    except ErroNaoEncontrado as e:
        return _sem_cadastro(e)
    except GoogleAPICallError as e:
        logger.error(f"Erro ao carregar dashboard do professor: {e}", exc_info=True)
        flash(formatar_erro_backend(e, "Falha ao carregar dados do professor."), "error")
        return render_template('professor/sem_cadastro.html')

    ativos = [b for b in bimestres if b.get('status') == BIMESTRE_ATIVO]
    return render_template('professor/dashboard.html', professor=professor, bimestres=bimestres, ativos=ativos)


@professor_bp.route('/subjects')
def disciplinas():
    try:
        professor = _professor_logado()
    except ErroNaoEncontrado as e:
        return _sem_cadastro(e)
    return render_template('professor/disciplinas.html', disciplinas=professor['subjects'])


@professor_bp.route('/bimesters')
def bimestres():
    try:
        professor = _professor_logado()
        lista = services.bimestres_do_professor(professor)
    except ErroNaoEncontrado as e:
        return _sem_cadastro(e)
    return render_template('professor/bimestres.html', bimestres=lista)


# === LANÇAMENTO DE NOTAS ===

def _entradas_notas(formulario) -> dict:
    entradas = {}
    for chave, valor in formulario.items():
        casamento = CAMPO_PLANILHA.match(chave)
        if casamento:
            campo, aluno_id = casamento.groups()
            entradas.setdefault(aluno_id, {})[CAMPOS_NOTA[campo]] = valor
    return entradas


@professor_bp.route('/grades', methods=['GET', 'POST'])
def notas():
    filtros = _filtros()
    try:
        professor = _professor_logado()
        contexto = _contexto_planilha(professor, filtros)

        if request.method == 'POST':
            gravadas = services.salvar_notas(
                professor, filtros['disciplina'], filtros['bimestre'], _entradas_notas(request.form),
                filtros['turma']
            )
            if gravadas:
                flash("Notas salvas com sucesso!", "success")
            else:
                flash("Nenhuma alteração para salvar.", "info")
            return redirect(url_for('professor_bp.notas', disciplina=filtros['disciplina'],
                                    bimestre=filtros['bimestre'], turma=filtros['turma']))

        linhas = []
        if contexto['bimestre']:
            linhas = services.planilha_notas(filtros['disciplina'], filtros['bimestre'], filtros['turma'])

    except ErroNaoEncontrado as e:
        return _sem_cadastro(e)
    except ErroAcesso:
        abort(403)
    except ErroValidacao as e:
        flash(str(e), "error")
        return redirect(url_for('professor_bp.notas', disciplina=filtros['disciplina'],
                                bimestre=filtros['bimestre'], turma=filtros['turma']))
    except GoogleAPICallError as e:
        logger.error(f"Erro na planilha de notas: {e}", exc_info=True)
        flash(formatar_erro_backend(e, "Falha ao salvar notas."), "error")
        return redirect(url_for('professor_bp.notas'))

    return render_template('professor/notas.html', linhas=linhas, **contexto)


# === LANÇAMENTO DE PRESENÇA ===

@professor_bp.route('/attendance', methods=['GET', 'POST'])
def presencas():
    filtros = _filtros()
    destino = dict(disciplina=filtros['disciplina'], bimestre=filtros['bimestre'],
                   turma=filtros['turma'], data=filtros['data'])
    try:
        professor = _professor_logado()
        contexto = _contexto_planilha(professor, filtros)

        if request.method == 'POST':
            total = services.salvar_presencas(
                professor,
                filtros['disciplina'],
                filtros['bimestre'],
                filtros['data'],
                request.form.getlist('alunos'),
                set(request.form.getlist('presentes')),
                filtros['turma']
            )
            flash(f"Presença salva para {total} aluno(s).", "success")
            return redirect(url_for('professor_bp.presencas', **destino))

        linhas = []
        if contexto['bimestre'] and filtros['data']:
            linhas = services.planilha_presenca(
                filtros['disciplina'], filtros['bimestre'], filtros['data'], filtros['turma']
            )

    except ErroNaoEncontrado as e:
        return _sem_cadastro(e)
    except ErroAcesso:
        abort(403)
    except ErroValidacao as e:
        flash(str(e), "error")
        return redirect(url_for('professor_bp.presencas', **destino))
    except GoogleAPICallError as e:
        logger.error(f"Erro na planilha de presença: {e}", exc_info=True)
        flash(formatar_erro_backend(e, "Falha ao salvar presença."), "error")
        return redirect(url_for('professor_bp.presencas'))

    return render_template('professor/presencas.html', linhas=linhas, **contexto)


@professor_bp.route('/attendance/history/<aluno_id>')
def historico_presencas(aluno_id):
    """
    Endpoint JSON do histórico de presenças (aberto pelo botão "Histórico").
    Retorna: { "aluno": ..., "registros": [{ "date", "present" }] }
    """
    disciplina = request.args.get('disciplina', '')
    bimestre = request.args.get('bimestre', '')
    try:
        professor = _professor_logado()
        services.validar_contexto(professor, disciplina, bimestre)
        aluno = consultas.obter_aluno(aluno_id)
        if aluno is None:
            return {"erro": "Aluno não encontrado"}, 404
        registros = services.historico_presencas(aluno_id, disciplina, bimestre)
    except ErroAcesso as e:
        return {"erro": str(e)}, 403
    except (ErroValidacao, ErroNaoEncontrado) as e:
        return {"erro": str(e)}, 400
    except GoogleAPICallError as e:
        logger.error(f"Erro ao carregar histórico de presenças: {e}", exc_info=True)
        return {"erro": formatar_erro_backend(e, "Falha ao carregar histórico de presenças.")}, 500

    return jsonify({"aluno": aluno['name'], "registros": registros})
