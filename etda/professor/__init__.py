"""
Módulo Professor (Blueprint)

Disciplinas, bimestres, lançamento de notas e de presença do professor.
"""

from flask import Blueprint

professor_bp = Blueprint(
    'professor_bp',
    __name__,
    url_prefix='/teacher'
)

from . import routes
