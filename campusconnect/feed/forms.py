"""Forms for the feed blueprint."""

from flask_wtf import FlaskForm
from flask_wtf.file import FileAllowed, FileField
from wtforms import StringField, TextAreaField
from wtforms.validators import DataRequired, Length, Optional


class PostForm(FlaskForm):
    """Form for publishing a post."""

    content = TextAreaField("What's on your mind?", validators=[Optional(), Length(max=5000)])
    image = FileField(
        "Image",
        validators=[FileAllowed(["jpg", "png", "jpeg", "gif", "webp"]), Optional()],
    )


class CommentForm(FlaskForm):
    """Form for commenting on a post."""

    text = TextAreaField("Comment", validators=[DataRequired(), Length(max=2000)])


class ShareForm(FlaskForm):
    """Form for sharing a post with a connection."""

    recipient = StringField("Recipient", validators=[DataRequired()])
