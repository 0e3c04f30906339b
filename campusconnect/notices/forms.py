"""Forms for the notices blueprint."""

from flask_wtf import FlaskForm
from wtforms import BooleanField, DateTimeLocalField, SelectField, StringField, TextAreaField
from wtforms.validators import DataRequired, Length, Optional

from .models import EVENT_CATEGORIES, NOTICE_CATEGORIES, NOTICE_PRIORITIES, RSVP_STATUSES


class NoticeForm(FlaskForm):
    """Form for posting a notice."""

    title = StringField("Title", validators=[DataRequired(), Length(max=200)])
    content = TextAreaField("Content", validators=[Optional()])
    category = SelectField("Category", choices=NOTICE_CATEGORIES, default="academic")
    priority = SelectField("Priority", choices=NOTICE_PRIORITIES, default="medium")
    department = StringField("Department", default="ALL")
    pinned = BooleanField("Pin to top")
    expires_at = DateTimeLocalField(
        "Expires", format="%Y-%m-%dT%H:%M", validators=[Optional()]
    )


class EventForm(FlaskForm):
    """Form for creating a campus event."""

    title = StringField("Event Title", validators=[DataRequired(), Length(max=200)])
    description = TextAreaField("Description", validators=[Optional()])
    category = SelectField("Category", choices=EVENT_CATEGORIES, default="club")
    start_date = DateTimeLocalField(
        "Starts", format="%Y-%m-%dT%H:%M", validators=[DataRequired()]
    )
    end_date = DateTimeLocalField("Ends", format="%Y-%m-%dT%H:%M", validators=[Optional()])
    location = StringField("Location", validators=[Optional()])
    department = StringField("Department", default="ALL")


class RSVPForm(FlaskForm):
    """Form for answering an event invitation."""

    status = SelectField(
        "Status", choices=[(status, status) for status in RSVP_STATUSES]
    )
