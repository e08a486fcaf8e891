"""Form helpers for JSON request bodies."""

from flask import current_app
from flask_wtf import FlaskForm
from werkzeug.datastructures import MultiDict
from wtforms import IntegerField
from wtforms.validators import ValidationError

from storefront.errors import ValidationFailed


def strip_value(value):
    """Coerce a JSON scalar to a trimmed string, keeping missing values missing."""
    if value is None:
        return None
    return str(value).strip()


def cart_quantity(form, field):
    """Quantity must fall inside 1..MAX_CART_QUANTITY."""
    maximum = current_app.config['MAX_CART_QUANTITY']
    if field.data is None or not 1 <= field.data <= maximum:
        raise ValidationError(f'Quantity must be between 1 and {maximum}')


class JSONIntegerField(IntegerField):
    """IntegerField for JSON bodies: booleans and fractional numbers are not integers."""

    def process_formdata(self, valuelist):
        if valuelist:
            value = valuelist[0]
            if isinstance(value, bool) or (isinstance(value, float) and not value.is_integer()):
                self.data = None
                raise ValueError(self.gettext('Not a valid integer value.'))
        super().process_formdata(valuelist)


class JSONForm(FlaskForm):
    """FlaskForm bound to the JSON body of the current request."""

    class Meta:
        csrf = False

    def validate_or_raise(self):
        if not self.validate():
            raise ValidationFailed(errors=self.errors)
        return self


def validate_nested(form_class, data, field_name):
    """Validate a nested JSON object with a plain wtforms ``Form``."""
    if not isinstance(data, dict):
        raise ValidationFailed(errors={field_name: ['Must be an object']})
    form = form_class(formdata=MultiDict(data))
    if not form.validate():
        raise ValidationFailed(errors={field_name: form.errors})
    return form
