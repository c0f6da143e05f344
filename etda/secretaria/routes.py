"""
Rotas do Módulo Secretaria

Cada cadastro segue o mesmo desenho: a página de listagem traz a tabela e o
formulário (novo ou edição); a exclusão é um POST separado.
"""
from datetime import date

from flask import (
    render_template,
    redirect,
    url_for,
    flash,
    abort,
    request,
    Response
)
from google.api_core.exceptions import GoogleAPICallError

from . import secretaria_bp
from . import services, relatorios
from .forms import AlunoForm, ProfessorForm, DisciplinaForm, TurmaForm, BimestreForm
from etda.core import acesso, consultas
from etda.core.constants import SECRETARIA, RELATORIOS, COL_TURMAS, COL_DISCIPLINAS, COL_BIMESTRES
from etda.core.erros import ErroValidacao, ErroNaoEncontrado, formatar_erro_backend
from etda.core.logger import get_logger

logger = get_logger(__name__)


@secretaria_bp.before_request
def restringir_acesso():
    return acesso.verificar_papel(SECRETARIA)


# === FUNÇÕES AUXILIARES ===

def _executar(operacao, msg_sucesso: str, msg_falha: str) -> bool:
    """
    Executa uma gravação do service layer e traduz o resultado em flash.

    Returns:
        bool: True quando a operação foi concluída.
    """
    try:
        operacao()
    except (ErroValidacao, ErroNaoEncontrado) as e:
        flash(str(e), "error")
        return False
    except GoogleAPICallError as e:
        logger.error(f"{msg_falha} {e}", exc_info=True)
        flash(formatar_erro_backend(e, msg_falha), "error")
        return False
    flash(msg_sucesso, "success")
    return True


def _erros_do_form(form) -> None:
    for mensagens in form.errors.values():
        for mensagem in mensagens:
            flash(mensagem, "error")


def _carregar(funcao, msg_falha: str, padrao=None):
    """Leitura para a tela; falhas do backend viram flash e lista vazia."""
    try:
        return funcao()
    except GoogleAPICallError as e:
        logger.error(f"{msg_falha} {e}", exc_info=True)
        flash(formatar_erro_backend(e, msg_falha), "error")
        return [] if padrao is None else padrao


def _iso(data):
    return data.isoformat() if data else None


def _exigir_item(colecao, item_id):
    item = consultas.obter(colecao, item_id)
    if item is None:
        abort(404)
    return item


# === DASHBOARD ===

@secretaria_bp.route('/')
def dashboard():
    metricas = _carregar(
        relatorios.metricas_dashboard,
        "Falha ao carregar métricas do dashboard.",
        padrao={'total_alunos': 0, 'total_professores': 0, 'total_disciplinas': 0,
                'bimestres_ativos': 0, 'turmas': []}
    )
    return render_template('secretaria/dashboard.html', metricas=metricas)


# === ALUNOS ===

def _form_aluno(aluno=None) -> AlunoForm:
    dados = {}
    if aluno:
        dados = {
            'nome': aluno['name'],
            'email': aluno['email'],
            'cpf': aluno.get('cpf'),
            'data_nascimento': _data_ou_none(aluno.get('birth_date')),
            'turma': aluno.get('class_id'),
        }
    form = AlunoForm(data=dados)
    turmas = _carregar(consultas.listar_turmas, "Falha ao carregar turmas.")
    form.turma.choices = [('', 'Selecione uma turma')] + [(t['id'], t['name']) for t in turmas]
    return form


def _data_ou_none(texto):
    try:
        return date.fromisoformat(texto) if texto else None
    except ValueError:
        return None


def _dados_aluno(form) -> dict:
    return {
        'name': form.nome.data,
        'email': form.email.data,
        'cpf': form.cpf.data,
        'birth_date': _iso(form.data_nascimento.data),
        'class_id': form.turma.data,
    }


@secretaria_bp.route('/students', methods=['GET', 'POST'])
def alunos():
    form = _form_aluno()
    if request.method == 'POST':
        if form.validate_on_submit():
            if _executar(lambda: services.criar_aluno(_dados_aluno(form)),
                         "Aluno criado com sucesso!", "Falha ao salvar aluno."):
                return redirect(url_for('secretaria_bp.alunos'))
        else:
            _erros_do_form(form)

    lista = _carregar(consultas.listar_alunos, "Falha ao carregar dados do banco.")
    return render_template('secretaria/alunos.html', alunos=lista, form=form, editando=None)


@secretaria_bp.route('/students/<aluno_id>/edit', methods=['GET', 'POST'])
def editar_aluno(aluno_id):
    aluno = consultas.obter_aluno(aluno_id)
    if aluno is None:
        abort(404)

    form = _form_aluno(aluno)
    if request.method == 'POST':
        if form.validate_on_submit():
            if _executar(lambda: services.atualizar_aluno(aluno_id, _dados_aluno(form)),
                         "Aluno atualizado com sucesso!", "Falha ao salvar aluno."):
                return redirect(url_for('secretaria_bp.alunos'))
        else:
            _erros_do_form(form)

    lista = _carregar(consultas.listar_alunos, "Falha ao carregar dados do banco.")
    return render_template('secretaria/alunos.html', alunos=lista, form=form, editando=aluno)


@secretaria_bp.route('/students/<aluno_id>/delete', methods=['POST'])
def excluir_aluno(aluno_id):
    _executar(lambda: services.excluir_aluno(aluno_id),
              "Aluno excluído com sucesso!", "Falha ao excluir aluno.")
    return redirect(url_for('secretaria_bp.alunos'))


# === PROFESSORES ===

def _form_professor(professor=None) -> ProfessorForm:
    dados = {}
    if professor:
        dados = {'nome': professor['name'], 'email': professor['email'],
                 'disciplinas': professor.get('subject_ids', [])}
    form = ProfessorForm(data=dados)
    disciplinas = _carregar(consultas.listar_disciplinas, "Falha ao carregar disciplinas.")
    form.disciplinas.choices = [(d['id'], d['name']) for d in disciplinas]
    return form


def _dados_professor(form) -> dict:
    return {'name': form.nome.data, 'email': form.email.data, 'subject_ids': form.disciplinas.data}


@secretaria_bp.route('/teachers', methods=['GET', 'POST'])
def professores():
    form = _form_professor()
    if request.method == 'POST':
        if form.validate_on_submit():
            if _executar(lambda: services.criar_professor(_dados_professor(form)),
                         "Professor criado com sucesso.", "Falha ao salvar professor."):
                return redirect(url_for('secretaria_bp.professores'))
        else:
            _erros_do_form(form)

    lista = _carregar(services.listar_professores, "Falha ao carregar professores do banco.")
    return render_template('secretaria/professores.html', professores=lista, form=form, editando=None)


@secretaria_bp.route('/teachers/<professor_id>/edit', methods=['GET', 'POST'])
def editar_professor(professor_id):
    professor = consultas.obter_professor(professor_id)
    if professor is None:
        abort(404)

    form = _form_professor(professor)
    if request.method == 'POST':
        if form.validate_on_submit():
            if _executar(lambda: services.atualizar_professor(professor_id, _dados_professor(form)),
                         "Professor atualizado com sucesso!", "Falha ao salvar professor."):
                return redirect(url_for('secretaria_bp.professores'))
        else:
            _erros_do_form(form)

    lista = _carregar(services.listar_professores, "Falha ao carregar professores do banco.")
    return render_template('secretaria/professores.html', professores=lista, form=form, editando=professor)


@secretaria_bp.route('/teachers/<professor_id>/delete', methods=['POST'])
def excluir_professor(professor_id):
    _executar(lambda: services.excluir_professor(professor_id),
              "Professor excluído com sucesso!", "Falha ao excluir professor.")
    return redirect(url_for('secretaria_bp.professores'))


# === DISCIPLINAS ===

def _dados_disciplina(form) -> dict:
    return {'name': form.nome.data, 'workload': form.carga_horaria.data}


@secretaria_bp.route('/subjects', methods=['GET', 'POST'])
def disciplinas():
    form = DisciplinaForm()
    if request.method == 'POST':
        if form.validate_on_submit():
            if _executar(lambda: services.criar_disciplina(_dados_disciplina(form)),
                         "Disciplina cadastrada com sucesso!", "Falha ao salvar disciplina."):
                return redirect(url_for('secretaria_bp.disciplinas'))
        else:
            _erros_do_form(form)

    lista = _carregar(consultas.listar_disciplinas, "Falha ao carregar disciplinas do banco.")
    return render_template('secretaria/disciplinas.html', disciplinas=lista, form=form, editando=None)


@secretaria_bp.route('/subjects/<disciplina_id>/edit', methods=['GET', 'POST'])
def editar_disciplina(disciplina_id):
    disciplina = _exigir_item(COL_DISCIPLINAS, disciplina_id)
    form = DisciplinaForm(data={'nome': disciplina['name'], 'carga_horaria': disciplina.get('workload')})
    if request.method == 'POST':
        if form.validate_on_submit():
            if _executar(lambda: services.atualizar_disciplina(disciplina_id, _dados_disciplina(form)),
                         "Disciplina atualizada com sucesso!", "Falha ao salvar disciplina."):
                return redirect(url_for('secretaria_bp.disciplinas'))
        else:
            _erros_do_form(form)

    lista = _carregar(consultas.listar_disciplinas, "Falha ao carregar disciplinas do banco.")
    return render_template('secretaria/disciplinas.html', disciplinas=lista, form=form, editando=disciplina)


@secretaria_bp.route('/subjects/<disciplina_id>/delete', methods=['POST'])
def excluir_disciplina(disciplina_id):
    _executar(lambda: services.excluir_disciplina(disciplina_id),
              "Disciplina excluída com sucesso!", "Falha ao excluir disciplina.")
    return redirect(url_for('secretaria_bp.disciplinas'))


# === TURMAS ===

def _dados_turma(form) -> dict:
    return {'name': form.nome.data, 'academic_year': form.ano_letivo.data}


@secretaria_bp.route('/classes', methods=['GET', 'POST'])
def turmas():
    form = TurmaForm()
    if request.method == 'POST':
        if form.validate_on_submit():
            if _executar(lambda: services.criar_turma(_dados_turma(form)),
                         "Turma cadastrada com sucesso!", "Falha ao salvar turma."):
                return redirect(url_for('secretaria_bp.turmas'))
        else:
            _erros_do_form(form)

    lista = _carregar(consultas.listar_turmas, "Falha ao carregar turmas do banco.")
    return render_template('secretaria/turmas.html', turmas=lista, form=form, editando=None)


@secretaria_bp.route('/classes/<turma_id>/edit', methods=['GET', 'POST'])
def editar_turma(turma_id):
    turma = _exigir_item(COL_TURMAS, turma_id)
    form = TurmaForm(data={'nome': turma['name'], 'ano_letivo': turma.get('academic_year')})
    if request.method == 'POST':
        if form.validate_on_submit():
            if _executar(lambda: services.atualizar_turma(turma_id, _dados_turma(form)),
                         "Turma atualizada com sucesso!", "Falha ao salvar turma."):
                return redirect(url_for('secretaria_bp.turmas'))
        else:
            _erros_do_form(form)

    lista = _carregar(consultas.listar_turmas, "Falha ao carregar turmas do banco.")
    return render_template('secretaria/turmas.html', turmas=lista, form=form, editando=turma)


@secretaria_bp.route('/classes/<turma_id>/delete', methods=['POST'])
def excluir_turma(turma_id):
    _executar(lambda: services.excluir_turma(turma_id),
              "Turma excluída com sucesso!", "Falha ao excluir turma.")
    return redirect(url_for('secretaria_bp.turmas'))


# === BIMESTRES ===

def _form_bimestre(bimestre=None) -> BimestreForm:
    dados = {}
    if bimestre:
        dados = {
            'nome': bimestre['name'],
            'disciplina': bimestre.get('subject_id'),
            'data_inicio': _data_ou_none(bimestre.get('start_date')),
            'data_fim': _data_ou_none(bimestre.get('end_date')),
            'status': bimestre.get('status'),
        }
    form = BimestreForm(data=dados)
    disciplinas = _carregar(consultas.listar_disciplinas, "Falha ao carregar disciplinas.")
    form.disciplina.choices = [('', 'Selecione uma disciplina')] + [(d['id'], d['name']) for d in disciplinas]
    return form


def _dados_bimestre(form) -> dict:
    return {
        'name': form.nome.data,
        'subject_id': form.disciplina.data,
        'start_date': _iso(form.data_inicio.data),
        'end_date': _iso(form.data_fim.data),
        'status': form.status.data,
    }


@secretaria_bp.route('/bimesters', methods=['GET', 'POST'])
def bimestres():
    form = _form_bimestre()
    if request.method == 'POST':
        if form.validate_on_submit():
            if _executar(lambda: services.criar_bimestre(_dados_bimestre(form)),
                         "Bimestre cadastrado com sucesso!", "Falha ao salvar bimestre."):
                return redirect(url_for('secretaria_bp.bimestres'))
        else:
            _erros_do_form(form)

    lista = _carregar(consultas.listar_bimestres, "Falha ao carregar bimestres do banco.")
    return render_template('secretaria/bimestres.html', bimestres=lista, form=form, editando=None)


@secretaria_bp.route('/bimesters/<bimestre_id>/edit', methods=['GET', 'POST'])
def editar_bimestre(bimestre_id):
    bimestre = _exigir_item(COL_BIMESTRES, bimestre_id)
    form = _form_bimestre(bimestre)
    if request.method == 'POST':
        if form.validate_on_submit():
            if _executar(lambda: services.atualizar_bimestre(bimestre_id, _dados_bimestre(form)),
                         "Bimestre atualizado com sucesso!", "Falha ao salvar bimestre."):
                return redirect(url_for('secretaria_bp.bimestres'))
        else:
            _erros_do_form(form)

    lista = _carregar(consultas.listar_bimestres, "Falha ao carregar bimestres do banco.")
    return render_template('secretaria/bimestres.html', bimestres=lista, form=form, editando=bimestre)


@secretaria_bp.route('/bimesters/<bimestre_id>/delete', methods=['POST'])
def excluir_bimestre(bimestre_id):
    _executar(lambda: services.excluir_bimestre(bimestre_id),
              "Bimestre excluído com sucesso!", "Falha ao excluir bimestre.")
    return redirect(url_for('secretaria_bp.bimestres'))


# === RELATÓRIOS ===

@secretaria_bp.route('/reports', endpoint='relatorios')
def pagina_relatorios():
    resumo = _carregar(relatorios.resumo_geral, "Falha ao carregar dados de relatórios.",
                       padrao={'total_alunos': 0, 'total_disciplinas': 0,
                               'taxa_aprovacao': '-', 'media_geral': '-'})
    alunos = _carregar(consultas.listar_alunos, "Falha ao carregar alunos.")

    aluno_id = request.args.get('aluno', '')
    consulta = None
    if aluno_id:
        try:
            consulta = relatorios.consultar_aluno(aluno_id)
        except ErroNaoEncontrado as e:
            flash(str(e), "error")
        except GoogleAPICallError as e:
            logger.error(f"Erro ao consultar aluno {aluno_id}: {e}", exc_info=True)
            flash(formatar_erro_backend(e, "Falha ao consultar notas/presenças."), "error")

    return render_template(
        'secretaria/relatorios.html',
        resumo=resumo,
        alunos=alunos,
        aluno_id=aluno_id,
        consulta=consulta,
        relatorios=RELATORIOS
    )


@secretaria_bp.route('/reports/<tipo>.csv')
def baixar_relatorio(tipo):
    try:
        nome_arquivo, conteudo = relatorios.gerar_csv(tipo)
    except ErroNaoEncontrado:
        abort(404)
    except GoogleAPICallError as e:
        logger.error(f"Erro ao gerar relatório {tipo}: {e}", exc_info=True)
        flash(formatar_erro_backend(e, "Falha ao gerar relatório."), "error")
        return redirect(url_for('secretaria_bp.relatorios'))

    logger.info(f"Relatório gerado: {nome_arquivo}")
    # BOM para o Excel reconhecer UTF-8
    return Response(
        '\ufeff' + conteudo,
        mimetype='text/csv',
        headers={'Content-Disposition': f'attachment; filename={nome_arquivo}'}
    )
