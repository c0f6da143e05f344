"""
Módulo de Logging Centralizado.

Todos os módulos do sistema escolar pedem seu logger aqui, para que
secretaria, professor e aluno escrevam no mesmo formato (stdout).
"""

import logging
import os
import sys

FORMATO_LOG = '[%(asctime)s] %(levelname)s in %(module)s: %(message)s'


def get_logger(name: str) -> logging.Logger:
    """
    Retorna o logger do módulo, configurando-o na primeira chamada.

    Args:
        name (str): Nome do módulo chamador (geralmente __name__).

    Returns:
        logging.Logger: Logger com handler de stdout e nível vindo de LOG_LEVEL.
    """
    logger = logging.getLogger(name)

    # Um handler por logger, mesmo com imports repetidos
    if not logger.handlers:
        nivel = os.environ.get('LOG_LEVEL', 'INFO').upper()
        logger.setLevel(getattr(logging, nivel, logging.INFO))

        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(logging.Formatter(FORMATO_LOG))
        logger.addHandler(handler)
        logger.propagate = False

    return logger
