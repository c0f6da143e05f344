"""
Módulo Aluno (Blueprint)

Portal do aluno: dados cadastrais, disciplinas, notas, faltas e situação final.
"""

from flask import Blueprint

aluno_bp = Blueprint(
    'aluno_bp',
    __name__,
    url_prefix='/student'
)

from . import routes
