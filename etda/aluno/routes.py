"""
Rotas do Módulo Aluno
"""

from flask import render_template, flash

from google.api_core.exceptions import GoogleAPICallError

from . import aluno_bp
from . import services
from etda.core import acesso, consultas
from etda.core.constants import ALUNO
from etda.core.erros import ErroNaoEncontrado, formatar_erro_backend
from etda.core.logger import get_logger

logger = get_logger(__name__)


@aluno_bp.before_request
def restringir_acesso():
    return acesso.verificar_papel(ALUNO)


def _renderizar(template: str, carregar):
    """Carrega os dados do aluno logado e renderiza; sem cadastro vira aviso."""
    try:
        dados = carregar(acesso.usuario_atual()['id'])
    except ErroNaoEncontrado as e:
        return render_template('aluno/sem_cadastro.html', mensagem=str(e))
    except GoogleAPICallError as e:
        logger.error(f"Erro ao carregar {template}: {e}", exc_info=True)
        flash(formatar_erro_backend(e, "Falha ao carregar seus dados."), "error")
        return render_template('aluno/sem_cadastro.html', mensagem=None)
    return render_template(template, **dados)


@aluno_bp.route('/')
def dashboard():
    return _renderizar('aluno/dashboard.html', services.painel)


@aluno_bp.route('/subjects')
def disciplinas():
    # Todas as disciplinas da escola (não há matrícula por disciplina)
    return render_template('aluno/disciplinas.html', disciplinas=consultas.listar_disciplinas())


@aluno_bp.route('/grades')
def notas():
    return _renderizar('aluno/notas.html', lambda aluno_id: {'grupos': services.notas_por_disciplina(aluno_id)})


@aluno_bp.route('/absences')
def faltas():
    return _renderizar('aluno/faltas.html', services.faltas)


@aluno_bp.route('/status')
def situacao():
    return _renderizar('aluno/situacao.html', services.situacao)
