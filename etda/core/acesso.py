"""
Controle de Acesso por Papel

Cada Blueprint de área (secretaria, professor, aluno) chama
verificar_papel() no seu before_request.
"""

from flask import session, redirect, url_for, abort

from .constants import DASHBOARDS
from .logger import get_logger

logger = get_logger(__name__)


def usuario_atual():
    return session.get('usuario')


def url_dashboard(papel: str) -> str:
    return url_for(DASHBOARDS[papel])


def verificar_papel(papel: str):
    """
    Retorna uma resposta de redirecionamento quando o usuário não pode
    acessar a área do 'papel', ou None quando o acesso é permitido.

    - Sem sessão: vai para o login.
    - Papel diferente: volta para o dashboard do próprio papel.
    - Papel desconhecido: 403.
    """
    usuario = usuario_atual()
    if not usuario:
        return redirect(url_for('auth_bp.login'))

    papel_usuario = usuario.get('role')
    if papel_usuario == papel:
        return None

    if papel_usuario not in DASHBOARDS:
        logger.warning(f"Acesso negado (papel desconhecido): {usuario.get('email')}")
        abort(403)

    logger.warning(f"Acesso redirecionado: {usuario.get('email')} ({papel_usuario}) tentou área '{papel}'")
    return redirect(url_dashboard(papel_usuario))
