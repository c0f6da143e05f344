from flask_wtf import FlaskForm
from wtforms import StringField, SelectField, SelectMultipleField, IntegerField, DateField
from wtforms.validators import DataRequired, InputRequired, Email, Length, NumberRange, Regexp, ValidationError

from etda.core.constants import OPCOES_BIMESTRE, BIMESTRE_ATIVO, BIMESTRE_ENCERRADO

MSG_OBRIGATORIO = "Por favor, preencha todos os campos."


class AlunoForm(FlaskForm):
    nome = StringField('Nome', validators=[
        DataRequired(message=MSG_OBRIGATORIO),
        Length(max=100)
    ])
    email = StringField('Email', validators=[
        DataRequired(message=MSG_OBRIGATORIO),
        Email(message="Por favor, insira um email válido.")
    ])
    cpf = StringField('CPF', validators=[
        DataRequired(message=MSG_OBRIGATORIO),
        Regexp(r'^\d{3}\.?\d{3}\.?\d{3}-?\d{2}$', message="CPF deve ter 11 dígitos (000.000.000-00).")
    ])
    data_nascimento = DateField('Data de Nascimento', validators=[DataRequired(message=MSG_OBRIGATORIO)])

    # Choices preenchidos na rota com as turmas do Firestore
    turma = SelectField('Turma', validators=[DataRequired(message=MSG_OBRIGATORIO)])


class ProfessorForm(FlaskForm):
    nome = StringField('Nome', validators=[
        DataRequired(message=MSG_OBRIGATORIO),
        Length(max=100)
    ])
    email = StringField('Email', validators=[
        DataRequired(message=MSG_OBRIGATORIO),
        Email(message="Por favor, insira um email válido.")
    ])
    disciplinas = SelectMultipleField('Disciplinas', validators=[
        DataRequired(message="Selecione ao menos uma disciplina.")
    ])


class DisciplinaForm(FlaskForm):
    nome = StringField('Nome da Disciplina', validators=[
        DataRequired(message=MSG_OBRIGATORIO),
        Length(max=100)
    ])
    carga_horaria = IntegerField('Carga Horária (horas)', validators=[
        InputRequired(message=MSG_OBRIGATORIO),
        NumberRange(min=1, message="A carga horária deve ser de pelo menos 1 hora.")
    ])


class TurmaForm(FlaskForm):
    nome = StringField('Nome da Turma', validators=[
        DataRequired(message=MSG_OBRIGATORIO),
        Length(max=100)
    ])
    ano_letivo = StringField('Ano Letivo', validators=[
        DataRequired(message=MSG_OBRIGATORIO),
        Length(max=20)
    ])


class BimestreForm(FlaskForm):
    nome = SelectField('Bimestre', choices=[(o, o) for o in OPCOES_BIMESTRE],
                       validators=[DataRequired(message=MSG_OBRIGATORIO)])
    disciplina = SelectField('Disciplina', validators=[DataRequired(message=MSG_OBRIGATORIO)])
    data_inicio = DateField('Data de Início', validators=[DataRequired(message=MSG_OBRIGATORIO)])
    data_fim = DateField('Data de Fim', validators=[DataRequired(message=MSG_OBRIGATORIO)])
    status = SelectField('Status', choices=[
        (BIMESTRE_ATIVO, 'Ativo'),
        (BIMESTRE_ENCERRADO, 'Encerrado')
    ], default=BIMESTRE_ATIVO)

    def validate_data_fim(self, field):
        if self.data_inicio.data and field.data and field.data < self.data_inicio.data:
            raise ValidationError("A data de fim não pode ser anterior à data de início.")
