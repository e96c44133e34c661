from wtforms import Form, StringField, IntegerField, BooleanField, SelectField
from wtforms.validators import DataRequired, Length, NumberRange

from config import GameConfig

# Socket.IO payloads are plain dicts, so these are bound with Form(data=...)
# rather than FlaskForm (no request form data, no CSRF token).


def clean_payload(data):
    """Drop null values so missing and null fields both fall back to defaults."""
    if not isinstance(data, dict):
        return {}
    return {k: v for k, v in data.items() if v is not None}


def as_text(value):
    if value is None:
        return value
    return str(value).strip()


def first_error(form):
    for field_name, errors in form.errors.items():
        if errors:
            return f"{field_name}: {errors[0]}"
    return "Invalid request"


class PlayerIdentityForm(Form):

    name = StringField("Name", filters=[as_text], default='Player', validators=[DataRequired(), Length(min=1, max=24)])
    avatar = StringField("Avatar", filters=[as_text], default='', validators=[Length(max=64)])
    persistent_id = StringField("Persistent Id", filters=[as_text], default='', validators=[Length(max=64)])


class CreateRoomForm(PlayerIdentityForm):
    pass


class JoinRoomForm(PlayerIdentityForm):

    code = StringField("Room Code", filters=[as_text], validators=[
        DataRequired(), Length(min=GameConfig.ROOM_CODE_LENGTH, max=GameConfig.ROOM_CODE_LENGTH)
    ])


class SettingsForm(Form):

    starting_hand_size = IntegerField("Starting Hand Size", default=GameConfig.DEFAULT_HAND_SIZE, validators=[
        NumberRange(min=GameConfig.MIN_HAND_SIZE, max=GameConfig.MAX_HAND_SIZE)
    ])
    stacking_enabled = BooleanField("Stacking", default=False)


class AddBotForm(Form):

    difficulty = SelectField('Difficulty', choices=[
        (GameConfig.BOT_EASY, 'Easy'), (GameConfig.BOT_MEDIUM, 'Medium'), (GameConfig.BOT_HARD, 'Hard')
    ], default=GameConfig.BOT_DEFAULT_DIFFICULTY)
