"""
Módulo Secretaria (Blueprint)

Cadastros (alunos, professores, disciplinas, turmas, bimestres),
dashboard e relatórios da secretaria.
"""

from flask import Blueprint

secretaria_bp = Blueprint(
    'secretaria_bp',
    __name__,
    url_prefix='/secretary' # Todas as rotas começarão com /secretary
)

from . import routes
