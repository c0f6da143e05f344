"""
Fixtures compartilhadas dos testes.

O Firestore é substituído por um banco em memória (FakeFirestore) que
implementa só a parte da API usada pelos Service Layers: coleções,
documentos, where(filter=FieldFilter), order_by, stream e WriteBatch.
"""

import copy
import os
from datetime import datetime, timedelta, timezone

# Variáveis exigidas pelo config.py (Fail Fast) antes de qualquer import do app
os.environ.setdefault('SECRET_KEY', 'chave-de-teste')
os.environ.setdefault('GOOGLE_CLIENT_ID', 'client-id-teste')
os.environ.setdefault('GOOGLE_CLIENT_SECRET', 'client-secret-teste')
os.environ.setdefault('ADMIN_PASSWORD', 'senha-admin-teste')

import pytest
from google.api_core.exceptions import InvalidArgument, NotFound
from google.cloud import firestore

from config import Config
from etda import create_app
from etda.core.database import set_db
from etda.core.constants import (
    COL_USUARIOS,
    COL_ALUNOS,
    COL_PROFESSORES,
    COL_DISCIPLINAS,
    COL_TURMAS,
    COL_BIMESTRES,
    SECRETARIA,
    PROFESSOR,
    ALUNO,
)


# === FIRESTORE EM MEMÓRIA ===

class FakeSnapshot:
    def __init__(self, reference, dados):
        self.reference = reference
        self.id = reference.id
        self._dados = dados

    @property
    def exists(self):
        return self._dados is not None

    def to_dict(self):
        return copy.deepcopy(self._dados) if self._dados is not None else None


class FakeDocumentRef:
    def __init__(self, db, colecao, doc_id):
        self._db = db
        self._colecao = colecao
        self.id = doc_id

    def _docs(self):
        return self._db.dados.setdefault(self._colecao, {})

    def get(self):
        return FakeSnapshot(self, self._docs().get(self.id))

    def set(self, valores, merge=False):
        atual = self._docs().get(self.id, {}) if merge else {}
        self._docs()[self.id] = {**atual, **self._db.resolver(valores, atual)}

    def update(self, valores):
        if self.id not in self._docs():
            raise NotFound(f"No document to update: {self._colecao}/{self.id}")
        atual = self._docs()[self.id]
        atual.update(self._db.resolver(valores, atual))

    def delete(self):
        self._docs().pop(self.id, None)


class FakeQuery:
    def __init__(self, db, colecao, filtros=(), ordem=()):
        self._db = db
        self._colecao = colecao
        self._filtros = tuple(filtros)
        self._ordem = tuple(ordem)

    def where(self, filter=None):
        return FakeQuery(self._db, self._colecao, self._filtros + (filter,), self._ordem)

    def order_by(self, campo, direction=firestore.Query.ASCENDING):
        return FakeQuery(self._db, self._colecao, self._filtros, self._ordem + ((campo, direction),))

    @staticmethod
    def _casa(dados, filtro):
        valor = dados.get(filtro.field_path)
        if filtro.op_string == '==':
            return valor == filtro.value
        if filtro.op_string == '!=':
            return valor != filtro.value
        if filtro.op_string == 'in':
            return valor in filtro.value
        if filtro.op_string == 'array_contains':
            return isinstance(valor, list) and filtro.value in valor
        raise NotImplementedError(filtro.op_string)

    def stream(self):
        docs = self._db.dados.get(self._colecao, {})
        itens = [
            (doc_id, dados) for doc_id, dados in docs.items()
            if all(self._casa(dados, f) for f in self._filtros)
        ]
        for campo, direcao in reversed(self._ordem):
            itens.sort(
                key=lambda item: (item[1].get(campo) is None, item[1].get(campo) or ''),
                reverse=direcao == firestore.Query.DESCENDING
            )
        for doc_id, dados in itens:
            yield FakeSnapshot(FakeDocumentRef(self._db, self._colecao, doc_id), dados)

    def get(self):
        return list(self.stream())


class FakeCollection(FakeQuery):
    def document(self, doc_id=None):
        if doc_id is None:
            doc_id = self._db.novo_id()
        return FakeDocumentRef(self._db, self._colecao, doc_id)


class FakeBatch:
    # Mesmo teto do Firestore por WriteBatch
    LIMITE = 500

    def __init__(self, db):
        self._db = db
        self._operacoes = []

    def set(self, ref, valores, merge=False):
        self._operacoes.append(lambda: ref.set(valores, merge=merge))

    def update(self, ref, valores):
        self._operacoes.append(lambda: ref.update(valores))

    def delete(self, ref):
        self._operacoes.append(ref.delete)

    def commit(self):
        if len(self._operacoes) > self.LIMITE:
            raise InvalidArgument("maximum 500 writes allowed per request")
        self._db.commits.append(len(self._operacoes))
        for operacao in self._operacoes:
            operacao()
        self._operacoes = []


class FakeFirestore:
    def __init__(self):
        self.dados = {}
        self.commits = []
        self._sequencia = 0
        self._relogio = datetime(2025, 1, 1, tzinfo=timezone.utc)

    def novo_id(self):
        self._sequencia += 1
        return f"auto{self._sequencia:04d}"

    def agora(self):
        # Sempre crescente, para ordenações por created_at serem estáveis
        self._relogio += timedelta(seconds=1)
        return self._relogio

    def resolver(self, valores, atual):
        resultado = {}
        for campo, valor in valores.items():
            if valor is firestore.SERVER_TIMESTAMP:
                resultado[campo] = self.agora()
            elif isinstance(valor, firestore.ArrayRemove):
                resultado[campo] = [v for v in atual.get(campo, []) if v not in valor.values]
            elif isinstance(valor, firestore.ArrayUnion):
                existentes = list(atual.get(campo, []))
                resultado[campo] = existentes + [v for v in valor.values if v not in existentes]
            else:
                resultado[campo] = copy.deepcopy(valor)
        return resultado

    def collection(self, nome):
        return FakeCollection(self, nome)

    def batch(self):
        return FakeBatch(self)

    # Atalhos para montar cenários
    def inserir(self, colecao, doc_id, **campos):
        self.dados.setdefault(colecao, {})[doc_id] = {'created_at': self.agora(), **campos}
        return doc_id

    def doc(self, colecao, doc_id):
        return self.dados.get(colecao, {}).get(doc_id)


# === APLICAÇÃO ===

class TestConfig(Config):
    TESTING = True
    WTF_CSRF_ENABLED = False
    RATELIMIT_ENABLED = False
    ADMIN_PASSWORD = 'senha-admin-teste'


@pytest.fixture
def db():
    fake = FakeFirestore()
    set_db(fake)
    yield fake
    set_db(None)


@pytest.fixture
def app(db):
    app = create_app(TestConfig)
    yield app


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def logar_como(client, db):
    """Coloca na sessão um usuário já cadastrado em 'users'."""
    def _logar(usuario_id):
        usuario = db.doc(COL_USUARIOS, usuario_id)
        with client.session_transaction() as sess:
            sess['usuario'] = {
                'id': usuario_id,
                'name': usuario['name'],
                'email': usuario['email'],
                'role': usuario['role'],
                'avatar_url': None,
            }
        return client
    return _logar


@pytest.fixture
def escola(db):
    """
    Cenário básico:
    - secretaria 'sec1'
    - professor 'prof1' com Matemática
    - turmas 'turmaA' e 'turmaB'; alunos 'aluno1' (A) e 'aluno2' (B)
    - Matemática: 'bim1' ativo e 'bim2' encerrado; Português: 'bim3' ativo
    """
    db.inserir(COL_USUARIOS, 'sec1', name='Sônia Secretaria', email='secretaria@escola.com.br', role=SECRETARIA)

    db.inserir(COL_DISCIPLINAS, 'mat', name='Matemática', workload=80)
    db.inserir(COL_DISCIPLINAS, 'por', name='Português', workload=60)

    db.inserir(COL_USUARIOS, 'prof1', name='Paulo Professor', email='paulo@escola.com.br', role=PROFESSOR)
    db.inserir(COL_PROFESSORES, 'prof1', subject_ids=['mat'])

    db.inserir(COL_TURMAS, 'turmaA', name='1º Ano A', academic_year='2025')
    db.inserir(COL_TURMAS, 'turmaB', name='1º Ano B', academic_year='2025')

    db.inserir(COL_USUARIOS, 'aluno1', name='Ana Aluna', email='ana@escola.com.br', role=ALUNO)
    db.inserir(COL_ALUNOS, 'aluno1', cpf='123.456.789-00', birth_date='2010-05-10', class_id='turmaA')
    db.inserir(COL_USUARIOS, 'aluno2', name='Bruno Aluno', email='bruno@escola.com.br', role=ALUNO)
    db.inserir(COL_ALUNOS, 'aluno2', cpf='987.654.321-00', birth_date='2010-08-20', class_id='turmaB')

    db.inserir(COL_BIMESTRES, 'bim1', name='1º Bimestre', subject_id='mat',
               start_date='2025-02-01', end_date='2025-04-15', status='active')
    db.inserir(COL_BIMESTRES, 'bim2', name='2º Bimestre', subject_id='mat',
               start_date='2025-04-16', end_date='2025-06-30', status='closed')
    db.inserir(COL_BIMESTRES, 'bim3', name='1º Bimestre', subject_id='por',
               start_date='2025-02-01', end_date='2025-04-15', status='active')
    return db
