"""Cart request forms."""

from wtforms import StringField
from wtforms.validators import DataRequired, InputRequired, Length, NumberRange, Optional

from storefront.forms.base import JSONForm, JSONIntegerField, cart_quantity, strip_value


class AddItemForm(JSONForm):
    productId = JSONIntegerField('Product', validators=[
        InputRequired(message='Product ID is required'),
        NumberRange(min=1, message='Valid product ID is required')
    ])
    quantity = JSONIntegerField('Quantity', default=1, validators=[Optional(), cart_quantity])


class UpdateItemForm(JSONForm):
    quantity = JSONIntegerField('Quantity', validators=[cart_quantity])


class MergeCartForm(JSONForm):
    sessionId = StringField('Guest session', filters=[strip_value], validators=[
        DataRequired(message='Session ID is required'),
        Length(max=64)
    ])
