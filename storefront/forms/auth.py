"""Authentication forms."""

from wtforms import BooleanField, PasswordField, StringField
from wtforms.validators import DataRequired, Email, Length

from storefront.forms.base import JSONForm, strip_value


class LoginForm(JSONForm):
    """Login form."""
    email = StringField('Email', filters=[strip_value], validators=[
        DataRequired(message='Email is required'),
        Email(message='Please enter a valid email address')
    ])
    password = PasswordField('Password', validators=[
        DataRequired(message='Password is required')
    ])
    remember = BooleanField('Remember Me')
    sessionId = StringField('Guest session', filters=[strip_value], validators=[Length(max=64)])
