"""
Consultas Compartilhadas (Service Layer de leitura)

Leituras do Firestore usadas por mais de uma área: listas de disciplinas,
turmas, bimestres e alunos já "juntadas" com os nomes relacionados, e o
histórico de notas e presenças de um aluno.

Consultas com filtro são ordenadas em memória, para não depender de
índices compostos no Firestore.
"""

from typing import Optional

from google.cloud import firestore
from google.cloud.firestore import FieldFilter

from .constants import (
    COL_USUARIOS,
    COL_ALUNOS,
    COL_PROFESSORES,
    COL_DISCIPLINAS,
    COL_TURMAS,
    COL_BIMESTRES,
    COL_NOTAS,
    COL_PRESENCAS,
)
from .database import get_db


def doc_para_dict(doc) -> dict:
    dados = doc.to_dict() or {}
    dados['id'] = doc.id
    return dados


def obter(colecao: str, doc_id: str) -> Optional[dict]:
    if not doc_id:
        return None
    doc = get_db().collection(colecao).document(doc_id).get()
    if not doc.exists:
        return None
    return doc_para_dict(doc)


def filtrar(colecao: str, campo: str, valor, operador: str = '==') -> list:
    docs = get_db().collection(colecao).where(filter=FieldFilter(campo, operador, valor)).stream()
    return [doc_para_dict(doc) for doc in docs]


def listar(colecao: str, ordem: Optional[str] = None, decrescente: bool = False) -> list:
    query = get_db().collection(colecao)
    if ordem:
        direcao = firestore.Query.DESCENDING if decrescente else firestore.Query.ASCENDING
        query = query.order_by(ordem, direction=direcao)
    return [doc_para_dict(doc) for doc in query.stream()]


def _chave_texto(campo):
    return lambda item: (item.get(campo) or '').lower()


# === CADASTROS BÁSICOS ===

def listar_disciplinas() -> list:
    return listar(COL_DISCIPLINAS, ordem='name')


def listar_turmas() -> list:
    return listar(COL_TURMAS, ordem='name')


def mapa_por_id(itens: list) -> dict:
    return {item['id']: item for item in itens}


def obter_usuario_por_email(email: str) -> Optional[dict]:
    encontrados = filtrar(COL_USUARIOS, 'email', email)
    return encontrados[0] if encontrados else None


def listar_bimestres(subject_id: Optional[str] = None) -> list:
    """Bimestres ordenados pela data de início, com o nome da disciplina."""
    if subject_id:
        bimestres = filtrar(COL_BIMESTRES, 'subject_id', subject_id)
    else:
        bimestres = listar(COL_BIMESTRES)

    disciplinas = mapa_por_id(listar_disciplinas())
    for bimestre in bimestres:
        disciplina = disciplinas.get(bimestre.get('subject_id'))
        bimestre['subject_name'] = disciplina['name'] if disciplina else None
    return sorted(bimestres, key=_chave_texto('start_date'))


def listar_alunos(class_id: Optional[str] = None) -> list:
    """
    Alunos com nome/e-mail (de 'users') e nome da turma (de 'classes'),
    mais recentes primeiro.
    """
    if class_id:
        alunos = filtrar(COL_ALUNOS, 'class_id', class_id)
    else:
        alunos = listar(COL_ALUNOS)

    usuarios = mapa_por_id(filtrar(COL_USUARIOS, 'role', 'student'))
    turmas = mapa_por_id(listar_turmas())

    resultado = []
    for aluno in alunos:
        usuario = usuarios.get(aluno['id'], {})
        turma = turmas.get(aluno.get('class_id'))
        resultado.append({
            'id': aluno['id'],
            'name': usuario.get('name', ''),
            'email': usuario.get('email', ''),
            'cpf': aluno.get('cpf', ''),
            'birth_date': aluno.get('birth_date'),
            'class_id': aluno.get('class_id'),
            'class_name': turma['name'] if turma else None,
            'created_at': aluno.get('created_at'),
        })
    resultado.sort(key=lambda a: str(a.get('created_at') or ''), reverse=True)
    return resultado


def obter_aluno(aluno_id: str) -> Optional[dict]:
    aluno = obter(COL_ALUNOS, aluno_id)
    if not aluno:
        return None
    usuario = obter(COL_USUARIOS, aluno_id) or {}
    turma = obter(COL_TURMAS, aluno.get('class_id'))
    aluno.update({
        'name': usuario.get('name', ''),
        'email': usuario.get('email', ''),
        'class_name': turma['name'] if turma else None,
    })
    return aluno


def obter_professor(professor_id: str) -> Optional[dict]:
    """Professor com nome/e-mail e a lista de disciplinas atribuídas."""
    professor = obter(COL_PROFESSORES, professor_id)
    if not professor:
        return None
    usuario = obter(COL_USUARIOS, professor_id) or {}
    disciplinas = mapa_por_id(listar_disciplinas())
    professor.update({
        'name': usuario.get('name', ''),
        'email': usuario.get('email', ''),
        'subjects': [disciplinas[i] for i in professor.get('subject_ids', []) if i in disciplinas],
    })
    return professor


# === HISTÓRICO DO ALUNO ===

def _anexar_nomes(registros: list) -> list:
    disciplinas = mapa_por_id(listar_disciplinas())
    bimestres = mapa_por_id(listar(COL_BIMESTRES))
    for registro in registros:
        disciplina = disciplinas.get(registro.get('subject_id'))
        bimestre = bimestres.get(registro.get('bimester_id'))
        registro['subject_name'] = disciplina['name'] if disciplina else '-'
        registro['bimester_name'] = bimestre['name'] if bimestre else '-'
    return registros


def notas_do_aluno(aluno_id: str) -> list:
    """Notas do aluno com nomes de disciplina e bimestre, mais recentes primeiro."""
    notas = _anexar_nomes(filtrar(COL_NOTAS, 'student_id', aluno_id))
    notas.sort(key=lambda n: str(n.get('created_at') or ''), reverse=True)
    return notas


def faltas_do_aluno(aluno_id: str) -> list:
    """Registros de ausência (present == False), data mais recente primeiro."""
    registros = [r for r in filtrar(COL_PRESENCAS, 'student_id', aluno_id) if not r.get('present')]
    registros = _anexar_nomes(registros)
    registros.sort(key=_chave_texto('date'), reverse=True)
    return registros
