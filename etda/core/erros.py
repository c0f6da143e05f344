"""
Erros de domínio e tradução de erros do backend para mensagens de tela.
"""

from google.api_core import exceptions as gexc


class ErroValidacao(ValueError):
    """Dado de formulário inválido (campo vazio, nota fora da faixa...)."""


class ErroNaoEncontrado(LookupError):
    """Documento referenciado não existe no Firestore."""


class ErroAcesso(PermissionError):
    """Usuário logado tentou agir fora do que o seu papel permite."""


DICA_PERMISSAO = "verifique GOOGLE_APPLICATION_CREDENTIALS e as regras de segurança do Firestore"


def formatar_erro_backend(err: Exception, fallback: str) -> str:
    """
    Converte uma exceção em mensagem para o usuário.

    Erros de autenticação/permissão do Firestore recebem uma dica extra;
    exceções sem mensagem caem no texto 'fallback'.
    """
    if isinstance(err, (gexc.PermissionDenied, gexc.Unauthenticated, gexc.Forbidden, gexc.Unauthorized)):
        return f"{err.message} ({DICA_PERMISSAO})"

    if isinstance(err, gexc.GoogleAPICallError):
        return err.message or fallback

    mensagem = str(err).strip()
    return mensagem or fallback
