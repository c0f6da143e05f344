from flask_wtf import FlaskForm
from wtforms import StringField, SelectField, PasswordField
from wtforms.validators import DataRequired, Length

from etda.core.constants import PAPEIS


class PrimeiroAcessoForm(FlaskForm):
    # O e-mail vem do Google; aqui só o que o Google não informa
    nome = StringField('Nome', validators=[
        DataRequired(message="Nome é obrigatório"),
        Length(min=3, max=100, message="Nome deve ter entre 3 e 100 caracteres")
    ])

    papel = SelectField('Perfil', choices=list(PAPEIS.items()), validators=[DataRequired()])

    senha_admin = PasswordField('Senha do admin', validators=[
        DataRequired(message="Informe a senha do admin")
    ])
