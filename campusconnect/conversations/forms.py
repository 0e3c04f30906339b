"""Forms for the conversations blueprint."""

from flask_wtf import FlaskForm
from wtforms import StringField
from wtforms.validators import DataRequired, Length


class GroupForm(FlaskForm):
    """Form for creating a private group."""

    name = StringField("Group Name", validators=[DataRequired(), Length(max=100)])


class ChannelForm(FlaskForm):
    """Form for creating a public channel."""

    name = StringField("Channel Name", validators=[DataRequired(), Length(max=100)])
