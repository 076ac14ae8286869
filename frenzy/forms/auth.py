from wtforms import PasswordField, StringField
from wtforms.validators import DataRequired, Email, Length, Optional

from frenzy.forms.base import JsonForm
from frenzy.models.user import MIN_PASSWORD_LENGTH

PASSWORD_LENGTH_MESSAGE = f"Password must be at least {MIN_PASSWORD_LENGTH} characters"


class SignupForm(JsonForm):
    email = StringField("Email", validators=[DataRequired(), Email(), Length(max=120)])
    password = PasswordField(
        "Password",
        validators=[
            DataRequired(),
            Length(min=MIN_PASSWORD_LENGTH, message=PASSWORD_LENGTH_MESSAGE),
        ],
    )
    first_name = StringField("First name", validators=[DataRequired(), Length(max=50)])
    last_name = StringField("Last name", validators=[Optional(), Length(max=50)])
    name = StringField("Display name", validators=[Optional(), Length(max=100)])


class LoginForm(JsonForm):
    email = StringField("Email", validators=[DataRequired()])
    password = PasswordField("Password", validators=[DataRequired()])


class ResetRequestForm(JsonForm):
    email = StringField("Email", validators=[Optional()])


class PerformResetForm(JsonForm):
    token = StringField("Token", validators=[DataRequired()])
    new_password = PasswordField(
        "New password",
        validators=[
            DataRequired(),
            Length(min=MIN_PASSWORD_LENGTH, message=PASSWORD_LENGTH_MESSAGE),
        ],
    )
