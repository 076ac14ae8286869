from wtforms import BooleanField, IntegerField, StringField, TextAreaField
from wtforms.validators import DataRequired, Email, Length, NumberRange, Optional

from frenzy.forms.base import JsonForm


class GameOfTheWeekForm(JsonForm):
    home_team = StringField("Home team", validators=[DataRequired(), Length(max=64)])
    away_team = StringField("Away team", validators=[DataRequired(), Length(max=64)])
    game_total_points = IntegerField(
        "Game total points", validators=[Optional(), NumberRange(min=0)]
    )


class PlayerOfTheWeekForm(JsonForm):
    player_total_yards = IntegerField(
        "Player total yards", validators=[Optional(), NumberRange(min=0)]
    )
    player_name = StringField("Player name", validators=[Optional(), Length(max=120)])
    team = StringField("Team", validators=[Optional(), Length(max=64)])


class UserEditForm(JsonForm):
    email = StringField("Email", validators=[Optional(), Email(), Length(max=120)])
    name = StringField("Display name", validators=[Optional(), Length(max=100)])
    first_name = StringField("First name", validators=[Optional(), Length(max=50)])
    last_name = StringField("Last name", validators=[Optional(), Length(max=50)])


class AdminRoleForm(JsonForm):
    is_admin = BooleanField("Admin")


class BroadcastForm(JsonForm):
    subject = StringField("Subject", validators=[DataRequired(), Length(max=200)])
    body = TextAreaField("Body", validators=[DataRequired()])
    audience = StringField("Audience", validators=[Optional()])
    q = StringField("Search", validators=[Optional(), Length(max=120)])
    dry_run = BooleanField("Dry run")


class SyncForm(JsonForm):
    week = IntegerField("Week", validators=[Optional(), NumberRange(min=1, max=18)])
    apply = BooleanField("Apply")
    all_weeks = BooleanField("All weeks")
    allow_past = BooleanField("Allow past")
    min_week = IntegerField("Minimum week", validators=[Optional(), NumberRange(min=1)])
    threshold_minutes = IntegerField(
        "Threshold minutes", validators=[Optional(), NumberRange(min=1)]
    )
