"""Forms for the messaging blueprint."""

from flask_wtf import FlaskForm
from flask_wtf.file import FileAllowed, FileField
from wtforms import TextAreaField
from wtforms.validators import Length, Optional


class MessageForm(FlaskForm):
    """Form for sending a message with an optional image."""

    text = TextAreaField("Message", validators=[Optional(), Length(max=4000)])
    image = FileField(
        "Image",
        validators=[FileAllowed(["jpg", "png", "jpeg", "gif", "webp"]), Optional()],
    )
