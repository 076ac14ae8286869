from wtforms import IntegerField, StringField
from wtforms.validators import DataRequired, Length, NumberRange, Optional

from frenzy.forms.base import JsonForm


class SubmitPickForm(JsonForm):
    week = IntegerField("Week", validators=[DataRequired(), NumberRange(min=1, max=18)])
    team = StringField("Team", validators=[DataRequired(), Length(max=64)])
    gotw_prediction = IntegerField(
        "Game of the Week prediction", validators=[Optional(), NumberRange(min=0, max=200)]
    )
    potw_prediction = IntegerField(
        "Player of the Week prediction", validators=[Optional(), NumberRange(min=0, max=1000)]
    )
