"""Checkout and order administration forms."""

from wtforms import BooleanField, Form, StringField, TextAreaField
from wtforms.validators import AnyOf, DataRequired, Email, InputRequired, Length, NumberRange, Optional, URL

from storefront.errors import ValidationFailed
from storefront.forms.base import JSONForm, JSONIntegerField, cart_quantity, strip_value, validate_nested
from storefront.models import ORDER_STATUSES

PAYMENT_METHODS = ('card', 'paypal', 'alipay')


def upper_value(value):
    return value.upper() if value else value


class AddressForm(Form):
    """One billing or shipping address, keyed the way clients send it."""
    firstName = StringField('First name', filters=[strip_value], validators=[
        DataRequired(), Length(min=2, max=50)])
    lastName = StringField('Last name', filters=[strip_value], validators=[
        DataRequired(), Length(min=2, max=50)])
    company = StringField('Company', filters=[strip_value], validators=[Optional(), Length(max=100)])
    addressLine1 = StringField('Address line 1', filters=[strip_value], validators=[
        DataRequired(), Length(min=3, max=100)])
    addressLine2 = StringField('Address line 2', filters=[strip_value], validators=[
        Optional(), Length(max=100)])
    city = StringField('City', filters=[strip_value], validators=[DataRequired(), Length(min=2, max=50)])
    state = StringField('State', filters=[strip_value], validators=[DataRequired(), Length(min=2, max=50)])
    postalCode = StringField('Postal code', filters=[strip_value], validators=[
        DataRequired(), Length(min=3, max=20)])
    country = StringField('Country', filters=[strip_value, upper_value], validators=[
        DataRequired(), Length(min=2, max=2, message='Use a two-letter country code')])

    def to_address(self):
        """Column-named mapping as stored on orders and in the address book."""
        return {
            'first_name': self.firstName.data,
            'last_name': self.lastName.data,
            'company': self.company.data or None,
            'address_line_1': self.addressLine1.data,
            'address_line_2': self.addressLine2.data or None,
            'city': self.city.data,
            'state': self.state.data,
            'postal_code': self.postalCode.data,
            'country': self.country.data,
        }


class LineItemForm(Form):
    productId = JSONIntegerField('Product', validators=[InputRequired(), NumberRange(min=1)])
    quantity = JSONIntegerField('Quantity', validators=[cart_quantity])


class CheckoutForm(JSONForm):
    email = StringField('Email', filters=[strip_value], validators=[
        DataRequired(message='Email is required'),
        Email(message='Please provide a valid email')
    ])
    phone = StringField('Phone', filters=[strip_value], validators=[Optional(), Length(min=7, max=20)])
    paymentMethod = StringField('Payment method', filters=[strip_value], default='card',
                                validators=[Optional(), AnyOf(PAYMENT_METHODS)])
    notes = TextAreaField('Notes', filters=[strip_value], validators=[Optional(), Length(max=1000)])
    saveAddress = BooleanField('Save address')

    def checkout_arguments(self, payload):
        """Validate the nested parts of ``payload`` and build create_order kwargs."""
        self.validate_or_raise()
        billing = validate_nested(AddressForm, payload.get('billingAddress'), 'billingAddress')
        shipping_data = payload.get('shippingAddress') or payload.get('billingAddress')
        shipping = validate_nested(AddressForm, shipping_data, 'shippingAddress')

        items = None
        raw_items = payload.get('cartItems')
        if raw_items:
            if not isinstance(raw_items, list):
                raise ValidationFailed(errors={'cartItems': ['Must be a list']})
            items = []
            for entry in raw_items:
                line = validate_nested(LineItemForm, entry, 'cartItems')
                items.append({'product_id': line.productId.data, 'quantity': line.quantity.data})

        return {
            'email': self.email.data.lower(),
            'phone': self.phone.data or None,
            'payment_method': self.paymentMethod.data or 'card',
            'notes': self.notes.data or None,
            'save_address': self.saveAddress.data,
            'billing_address': billing.to_address(),
            'shipping_address': shipping.to_address(),
            'items': items,
        }


class StatusUpdateForm(JSONForm):
    status = StringField('Status', filters=[strip_value], validators=[
        DataRequired(message='Status is required'),
        AnyOf(ORDER_STATUSES, message='Invalid order status')
    ])
    trackingNumber = StringField('Tracking number', filters=[strip_value], validators=[
        Optional(), Length(min=3, max=50)])
    notes = StringField('Notes', filters=[strip_value], validators=[Optional(), Length(max=500)])


class PaymentForm(JSONForm):
    successUrl = StringField('Success URL', filters=[strip_value], validators=[
        Optional(), URL(require_tld=False)])
    cancelUrl = StringField('Cancel URL', filters=[strip_value], validators=[
        Optional(), URL(require_tld=False)])
