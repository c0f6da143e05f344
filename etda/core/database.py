"""
Módulo de Conexão com o Banco de Dados (Core)

Cria sob demanda o cliente do Google Firestore usado pelos "Service Layers"
da secretaria, do professor e do aluno.
"""

from flask import current_app, has_app_context
from google.cloud import firestore

from .logger import get_logger

logger = get_logger(__name__)

# Limite de operações por WriteBatch imposto pelo Firestore
LIMITE_LOTE = 500

_db = None


def get_db() -> firestore.Client:
    """
    Retorna o cliente do Firestore, criando-o na primeira chamada.

    O SDK busca as credenciais em 'GOOGLE_APPLICATION_CREDENTIALS'.
    """
    global _db
    if _db is None:
        projeto = current_app.config.get('GOOGLE_CLOUD_PROJECT') if has_app_context() else None
        try:
            _db = firestore.Client(project=projeto)
            logger.info("Conexão com o Firestore estabelecida com sucesso.")
        except Exception as e:
            logger.critical(f"Erro ao conectar com o Firestore: {e}", exc_info=True)
            raise ConnectionError("Não foi possível conectar ao Firestore.") from e
    return _db


def set_db(cliente) -> None:
    """Substitui o cliente (usado pelos testes e scripts)."""
    global _db
    _db = cliente


class LoteLimitado:
    """
    WriteBatch que faz commit a cada LIMITE_LOTE operações.

    Gravações com mais de LIMITE_LOTE documentos deixam de ser atômicas:
    cada lote é confirmado separadamente.
    """

    def __init__(self, db=None):
        self._db = db or get_db()
        self._batch = self._db.batch()
        self._pendentes = 0
        self.total = 0

    def set(self, ref, dados, merge=False):
        self._batch.set(ref, dados, merge=merge)
        self._contar()

    def update(self, ref, dados):
        self._batch.update(ref, dados)
        self._contar()

    def delete(self, ref):
        self._batch.delete(ref)
        self._contar()

    def _contar(self):
        self._pendentes += 1
        self.total += 1
        if self._pendentes >= LIMITE_LOTE:
            self.commit()

    def commit(self):
        if self._pendentes:
            self._batch.commit()
            self._batch = self._db.batch()
            self._pendentes = 0


def excluir_documentos(refs) -> int:
    """
    Exclui uma lista de DocumentReference em lotes de até LIMITE_LOTE.

    Returns:
        int: Quantidade de documentos excluídos.
    """
    lote = LoteLimitado()
    for ref in refs:
        lote.delete(ref)
    lote.commit()
    return lote.total
