"""
Camada de Serviço (Service Layer) da Secretaria

Gravações dos cadastros no Firestore. Como o Firestore não tem chaves
estrangeiras, as exclusões removem explicitamente os documentos dependentes
(notas, presenças, bimestres) e as referências nos outros documentos.
"""

from google.cloud import firestore
from google.cloud.firestore import FieldFilter

from etda.core import consultas
from etda.core.constants import (
    COL_USUARIOS,
    COL_ALUNOS,
    COL_PROFESSORES,
    COL_DISCIPLINAS,
    COL_TURMAS,
    COL_BIMESTRES,
    COL_NOTAS,
    COL_PRESENCAS,
    OPCOES_BIMESTRE,
    BIMESTRE_ATIVO,
    BIMESTRE_ENCERRADO,
    ALUNO,
    PROFESSOR,
)
from etda.core.database import get_db, excluir_documentos, LoteLimitado
from etda.core.erros import ErroValidacao, ErroNaoEncontrado
from etda.core.logger import get_logger

logger = get_logger(__name__)


# === FUNÇÕES AUXILIARES ===

def _obrigatorios(dados: dict, *campos):
    for campo in campos:
        valor = dados.get(campo)
        if valor is None or (isinstance(valor, str) and not valor.strip()):
            raise ErroValidacao("Por favor, preencha todos os campos.")


def _exigir(colecao: str, doc_id: str, rotulo: str) -> dict:
    documento = consultas.obter(colecao, doc_id)
    if documento is None:
        raise ErroNaoEncontrado(f"{rotulo} não encontrado(a).")
    return documento


def _email_disponivel(email: str, ignorar_id: str = None) -> str:
    email = (email or '').strip().lower()
    existente = consultas.obter_usuario_por_email(email)
    if existente and existente['id'] != ignorar_id:
        raise ErroValidacao(f"Já existe um usuário com o email '{email}'.")
    return email


def _refs_onde(colecao: str, campo: str, valor, operador: str = '=='):
    db = get_db()
    docs = db.collection(colecao).where(filter=FieldFilter(campo, operador, valor)).stream()
    return [doc.reference for doc in docs]


def _criar_usuario_com_papel(batch, nome: str, email: str, papel: str):
    db = get_db()
    usuario_ref = db.collection(COL_USUARIOS).document()
    batch.set(usuario_ref, {
        'name': nome.strip(),
        'email': email,
        'role': papel,
        'created_at': firestore.SERVER_TIMESTAMP,
    })
    return usuario_ref


# === ALUNOS ===

def criar_aluno(dados: dict) -> str:
    """
    Cadastra o perfil ('users', role student) e a matrícula ('students'),
    ambos com o mesmo ID.
    """
    _obrigatorios(dados, 'name', 'email', 'cpf', 'birth_date', 'class_id')
    email = _email_disponivel(dados['email'])
    _exigir(COL_TURMAS, dados['class_id'], 'Turma')

    db = get_db()
    batch = db.batch()
    usuario_ref = _criar_usuario_com_papel(batch, dados['name'], email, ALUNO)
    batch.set(db.collection(COL_ALUNOS).document(usuario_ref.id), {
        'cpf': dados['cpf'].strip(),
        'birth_date': dados['birth_date'],
        'class_id': dados['class_id'],
        'created_at': firestore.SERVER_TIMESTAMP,
    })
    batch.commit()

    logger.info(f"Aluno criado: {email} ({usuario_ref.id})")
    return usuario_ref.id


def atualizar_aluno(aluno_id: str, dados: dict) -> None:
    _obrigatorios(dados, 'name', 'email', 'cpf', 'birth_date', 'class_id')
    _exigir(COL_ALUNOS, aluno_id, 'Aluno')
    email = _email_disponivel(dados['email'], ignorar_id=aluno_id)
    _exigir(COL_TURMAS, dados['class_id'], 'Turma')

    db = get_db()
    batch = db.batch()
    batch.update(db.collection(COL_USUARIOS).document(aluno_id), {
        'name': dados['name'].strip(),
        'email': email,
    })
    batch.update(db.collection(COL_ALUNOS).document(aluno_id), {
        'cpf': dados['cpf'].strip(),
        'birth_date': dados['birth_date'],
        'class_id': dados['class_id'],
    })
    batch.commit()
    logger.info(f"Aluno atualizado: {aluno_id}")


def excluir_aluno(aluno_id: str) -> None:
    """Remove perfil, matrícula, notas e presenças do aluno."""
    _exigir(COL_ALUNOS, aluno_id, 'Aluno')
    db = get_db()
    refs = [
        db.collection(COL_ALUNOS).document(aluno_id),
        db.collection(COL_USUARIOS).document(aluno_id),
    ]
    refs += _refs_onde(COL_NOTAS, 'student_id', aluno_id)
    refs += _refs_onde(COL_PRESENCAS, 'student_id', aluno_id)
    total = excluir_documentos(refs)
    logger.info(f"Aluno excluído: {aluno_id} ({total} documentos)")


# === PROFESSORES ===

def listar_professores() -> list:
    """Professores com nome, e-mail e disciplinas, mais recentes primeiro."""
    professores = consultas.listar(COL_PROFESSORES)
    usuarios = consultas.mapa_por_id(consultas.filtrar(COL_USUARIOS, 'role', PROFESSOR))
    disciplinas = consultas.mapa_por_id(consultas.listar_disciplinas())

    resultado = []
    for professor in professores:
        usuario = usuarios.get(professor['id'], {})
        ids = [i for i in professor.get('subject_ids', []) if i in disciplinas]
        resultado.append({
            'id': professor['id'],
            'name': usuario.get('name', ''),
            'email': usuario.get('email', ''),
            'subject_ids': ids,
            'subject_names': ', '.join(disciplinas[i]['name'] for i in ids),
            'created_at': professor.get('created_at'),
        })
    resultado.sort(key=lambda p: str(p.get('created_at') or ''), reverse=True)
    return resultado


def _validar_disciplinas(subject_ids) -> list:
    ids = list(dict.fromkeys(subject_ids or []))
    if not ids:
        raise ErroValidacao("Selecione ao menos uma disciplina.")
    for subject_id in ids:
        _exigir(COL_DISCIPLINAS, subject_id, 'Disciplina')
    return ids


def criar_professor(dados: dict) -> str:
    _obrigatorios(dados, 'name', 'email')
    email = _email_disponivel(dados['email'])
    subject_ids = _validar_disciplinas(dados.get('subject_ids'))

    db = get_db()
    batch = db.batch()
    usuario_ref = _criar_usuario_com_papel(batch, dados['name'], email, PROFESSOR)
    batch.set(db.collection(COL_PROFESSORES).document(usuario_ref.id), {
        'subject_ids': subject_ids,
        'created_at': firestore.SERVER_TIMESTAMP,
    })
    batch.commit()

    logger.info(f"Professor criado: {email} ({len(subject_ids)} disciplinas)")
    return usuario_ref.id


def atualizar_professor(professor_id: str, dados: dict) -> None:
    _obrigatorios(dados, 'name', 'email')
    _exigir(COL_PROFESSORES, professor_id, 'Professor')
    email = _email_disponivel(dados['email'], ignorar_id=professor_id)
    subject_ids = _validar_disciplinas(dados.get('subject_ids'))

    db = get_db()
    batch = db.batch()
    batch.update(db.collection(COL_USUARIOS).document(professor_id), {
        'name': dados['name'].strip(),
        'email': email,
    })
    batch.update(db.collection(COL_PROFESSORES).document(professor_id), {
        'subject_ids': subject_ids,
    })
    batch.commit()
    logger.info(f"Professor atualizado: {professor_id}")


def excluir_professor(professor_id: str) -> None:
    _exigir(COL_PROFESSORES, professor_id, 'Professor')
    db = get_db()
    excluir_documentos([
        db.collection(COL_PROFESSORES).document(professor_id),
        db.collection(COL_USUARIOS).document(professor_id),
    ])
    logger.info(f"Professor excluído: {professor_id}")


# === DISCIPLINAS ===

def _dados_disciplina(dados: dict) -> dict:
    _obrigatorios(dados, 'name', 'workload')
    try:
        carga = int(dados['workload'])
    except (TypeError, ValueError):
        raise ErroValidacao("Carga horária inválida.")
    if carga < 1:
        raise ErroValidacao("A carga horária deve ser de pelo menos 1 hora.")
    return {'name': dados['name'].strip(), 'workload': carga}


def criar_disciplina(dados: dict) -> str:
    ref = get_db().collection(COL_DISCIPLINAS).document()
    ref.set({**_dados_disciplina(dados), 'created_at': firestore.SERVER_TIMESTAMP})
    logger.info(f"Disciplina criada: {dados.get('name')}")
    return ref.id


def atualizar_disciplina(disciplina_id: str, dados: dict) -> None:
    _exigir(COL_DISCIPLINAS, disciplina_id, 'Disciplina')
    get_db().collection(COL_DISCIPLINAS).document(disciplina_id).update(_dados_disciplina(dados))
    logger.info(f"Disciplina atualizada: {disciplina_id}")


def excluir_disciplina(disciplina_id: str) -> None:
    """
    Remove a disciplina, seus bimestres, notas e presenças, e tira a
    disciplina da lista dos professores.
    """
    _exigir(COL_DISCIPLINAS, disciplina_id, 'Disciplina')
    db = get_db()

    for professor_ref in _refs_onde(COL_PROFESSORES, 'subject_ids', disciplina_id, 'array_contains'):
        professor_ref.update({'subject_ids': firestore.ArrayRemove([disciplina_id])})

    refs = [db.collection(COL_DISCIPLINAS).document(disciplina_id)]
    refs += _refs_onde(COL_BIMESTRES, 'subject_id', disciplina_id)
    refs += _refs_onde(COL_NOTAS, 'subject_id', disciplina_id)
    refs += _refs_onde(COL_PRESENCAS, 'subject_id', disciplina_id)
    total = excluir_documentos(refs)
    logger.info(f"Disciplina excluída: {disciplina_id} ({total} documentos)")


# === TURMAS ===

def _dados_turma(dados: dict) -> dict:
    _obrigatorios(dados, 'name', 'academic_year')
    return {'name': dados['name'].strip(), 'academic_year': str(dados['academic_year']).strip()}


def criar_turma(dados: dict) -> str:
    ref = get_db().collection(COL_TURMAS).document()
    ref.set({**_dados_turma(dados), 'created_at': firestore.SERVER_TIMESTAMP})
    logger.info(f"Turma criada: {dados.get('name')}")
    return ref.id


def atualizar_turma(turma_id: str, dados: dict) -> None:
    _exigir(COL_TURMAS, turma_id, 'Turma')
    get_db().collection(COL_TURMAS).document(turma_id).update(_dados_turma(dados))
    logger.info(f"Turma atualizada: {turma_id}")


def excluir_turma(turma_id: str) -> None:
    """Remove a turma; os alunos dela ficam sem turma (class_id = None)."""
    _exigir(COL_TURMAS, turma_id, 'Turma')
    lote = LoteLimitado()
    for aluno_ref in _refs_onde(COL_ALUNOS, 'class_id', turma_id):
        lote.update(aluno_ref, {'class_id': None})
    lote.delete(get_db().collection(COL_TURMAS).document(turma_id))
    lote.commit()
    logger.info(f"Turma excluída: {turma_id}")


# === BIMESTRES ===

def _dados_bimestre(dados: dict) -> dict:
    _obrigatorios(dados, 'name', 'subject_id', 'start_date', 'end_date')
    if dados['name'] not in OPCOES_BIMESTRE:
        raise ErroValidacao("Bimestre inválido.")
    status = dados.get('status') or BIMESTRE_ATIVO
    if status not in (BIMESTRE_ATIVO, BIMESTRE_ENCERRADO):
        raise ErroValidacao("Status inválido.")
    # Datas ISO (YYYY-MM-DD) comparam como texto
    if dados['end_date'] < dados['start_date']:
        raise ErroValidacao("A data de fim não pode ser anterior à data de início.")
    _exigir(COL_DISCIPLINAS, dados['subject_id'], 'Disciplina')
    return {
        'name': dados['name'],
        'subject_id': dados['subject_id'],
        'start_date': dados['start_date'],
        'end_date': dados['end_date'],
        'status': status,
    }


def criar_bimestre(dados: dict) -> str:
    ref = get_db().collection(COL_BIMESTRES).document()
    ref.set({**_dados_bimestre(dados), 'created_at': firestore.SERVER_TIMESTAMP})
    logger.info(f"Bimestre criado: {dados.get('name')} ({dados.get('subject_id')})")
    return ref.id


def atualizar_bimestre(bimestre_id: str, dados: dict) -> None:
    _exigir(COL_BIMESTRES, bimestre_id, 'Bimestre')
    get_db().collection(COL_BIMESTRES).document(bimestre_id).update(_dados_bimestre(dados))
    logger.info(f"Bimestre atualizado: {bimestre_id}")


def excluir_bimestre(bimestre_id: str) -> None:
    _exigir(COL_BIMESTRES, bimestre_id, 'Bimestre')
    db = get_db()
    refs = [db.collection(COL_BIMESTRES).document(bimestre_id)]
    refs += _refs_onde(COL_NOTAS, 'bimester_id', bimestre_id)
    refs += _refs_onde(COL_PRESENCAS, 'bimester_id', bimestre_id)
    total = excluir_documentos(refs)
    logger.info(f"Bimestre excluído: {bimestre_id} ({total} documentos)")
