"""
Camada de Serviço (Service Layer) da Autenticação

Responsável por localizar o perfil ('users') de quem fez login pelo Google
e pelo cadastro de primeiro acesso, com Roles e Logging estruturado.
"""

import hmac

from google.cloud import firestore

from etda.core import consultas
from etda.core.constants import (
    COL_USUARIOS,
    COL_ALUNOS,
    COL_PROFESSORES,
    PAPEIS,
    PROFESSOR,
    ALUNO,
)
from etda.core.database import get_db
from etda.core.erros import ErroValidacao, ErroAcesso
from etda.core.logger import get_logger

# Inicializa o logger para este módulo
logger = get_logger(__name__)


def normalizar_email(email) -> str:
    return (email or '').strip().lower()


def dados_sessao(usuario: dict) -> dict:
    """Somente o necessário para a sessão (sem Timestamps)."""
    return {
        'id': usuario['id'],
        'name': usuario.get('name', ''),
        'email': usuario.get('email', ''),
        'role': usuario.get('role'),
        'avatar_url': usuario.get('avatar_url'),
    }


def autenticar_usuario(google_profile: dict):
    """
    Procura o perfil cadastrado para o e-mail do Google.

    Returns:
        dict | None: Dados de sessão do usuário, ou None quando o e-mail
        ainda não tem cadastro (fluxo de primeiro acesso).

    Raises:
        ValueError: Perfil do Google sem e-mail.
        ErroAcesso: Perfil encontrado com papel inválido.
    """
    email = normalizar_email(google_profile.get('email'))
    if not email:
        logger.error("Perfil do Google recebido sem e-mail.")
        raise ValueError("Perfil do Google não contém e-mail.")

    usuario = consultas.obter_usuario_por_email(email)
    if usuario is None:
        logger.info(f"E-mail sem cadastro, encaminhando ao primeiro acesso: {email}")
        return None

    if usuario.get('role') not in PAPEIS:
        logger.warning(f"Login recusado, papel inválido: {email} ({usuario.get('role')})")
        raise ErroAcesso("Seu cadastro não possui um perfil válido. Procure a secretaria.")

    atualizacao = {'ultimo_acesso': firestore.SERVER_TIMESTAMP}
    if google_profile.get('google_id') and not usuario.get('google_id'):
        atualizacao['google_id'] = google_profile['google_id']
    if google_profile.get('avatar_url') and not usuario.get('avatar_url'):
        atualizacao['avatar_url'] = google_profile['avatar_url']
        usuario['avatar_url'] = google_profile['avatar_url']
    get_db().collection(COL_USUARIOS).document(usuario['id']).update(atualizacao)

    logger.info(f"Login efetuado: {email} (Role: {usuario.get('role')})")
    return dados_sessao(usuario)


def senha_admin_confere(informada: str, esperada) -> bool:
    if not esperada:
        raise ErroValidacao("Senha admin não configurada. Verifique o arquivo .env.")
    return hmac.compare_digest((informada or '').encode(), esperada.encode())


def registrar_primeiro_acesso(google_profile: dict, nome: str, papel: str) -> dict:
    """
    Cria o perfil de um e-mail ainda não cadastrado.

    Professores e alunos também ganham o documento da sua coleção
    (sem disciplinas / sem turma), a ser completado pela secretaria.
    """
    email = normalizar_email(google_profile.get('email'))
    if not email:
        raise ValueError("Perfil do Google não contém e-mail.")
    if papel not in PAPEIS:
        raise ErroValidacao("Perfil inválido.")
    if consultas.obter_usuario_por_email(email):
        raise ErroValidacao("Este e-mail já possui cadastro. Faça login novamente.")

    db = get_db()
    usuario_ref = db.collection(COL_USUARIOS).document()
    novo_usuario = {
        'name': nome.strip(),
        'email': email,
        'role': papel,
        'google_id': google_profile.get('google_id'),
        'avatar_url': google_profile.get('avatar_url'),
        'created_at': firestore.SERVER_TIMESTAMP,
    }

    batch = db.batch()
    batch.set(usuario_ref, novo_usuario)
    if papel == PROFESSOR:
        batch.set(db.collection(COL_PROFESSORES).document(usuario_ref.id), {
            'subject_ids': [],
            'created_at': firestore.SERVER_TIMESTAMP,
        })
    elif papel == ALUNO:
        batch.set(db.collection(COL_ALUNOS).document(usuario_ref.id), {
            'cpf': '',
            'birth_date': None,
            'class_id': None,
            'created_at': firestore.SERVER_TIMESTAMP,
        })
    batch.commit()

    logger.info(f"Primeiro acesso cadastrado: {email} (Role: {papel})")
    novo_usuario['id'] = usuario_ref.id
    return dados_sessao(novo_usuario)
