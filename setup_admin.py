"""
Script Utilitário: setup_admin.py
Use este script para cadastrar (ou promover) o primeiro usuário da Secretaria.
"""

from google.cloud import firestore

from etda import create_app
from etda.core import consultas
from etda.core.constants import COL_USUARIOS, SECRETARIA
from etda.core.database import get_db

# Inicializa a aplicação para carregar configurações e banco de dados
app = create_app()


def promover_secretaria(email, nome=None):
    """
    Promove o usuário do e-mail a Secretaria; se ele não existir, cria o registro.

    Returns:
        str: ID do documento em 'users'.
    """
    email = email.strip().lower()
    print(f"--- Configurando secretaria: {email} ---")

    with app.app_context():
        usuario = consultas.obter_usuario_por_email(email)
        colecao = get_db().collection(COL_USUARIOS)

        if usuario:
            colecao.document(usuario['id']).update({'role': SECRETARIA})
            print(f"✅ SUCESSO! O usuário '{email}' agora é da SECRETARIA.")
            print("⚠️  IMPORTANTE: faça LOGOUT e LOGIN novamente para a mudança surtir efeito.")
            return usuario['id']

        ref = colecao.document()
        ref.set({
            'name': nome or email.split('@')[0],
            'email': email,
            'role': SECRETARIA,
            'created_at': firestore.SERVER_TIMESTAMP,
        })
        print(f"✅ SUCESSO! Usuário '{email}' criado como SECRETARIA. Entre com a conta Google desse e-mail.")
        return ref.id


if __name__ == "__main__":
    email_alvo = input("Digite o e-mail da secretaria: ").strip()
    nome_alvo = input("Nome (opcional): ").strip() or None
    promover_secretaria(email_alvo, nome_alvo)
