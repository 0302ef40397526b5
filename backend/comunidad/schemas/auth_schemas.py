from marshmallow import EXCLUDE, fields, validates, ValidationError
from comunidad.extensions import ma


def _validar_email(value):
    if value and ("@" not in value or value.startswith("@") or value.endswith("@")):
        raise ValidationError("Correo electrónico inválido.")


class RegistroSchema(ma.Schema):
    """Obligatorios y duplicados se comprueban en el servicio (con su código)."""

    class Meta:
        unknown = EXCLUDE

    username = fields.String(load_default="")
    password = fields.String(load_default="", load_only=True)
    email = fields.String(load_default=None, allow_none=True)
    full_name = fields.String(load_default=None, allow_none=True)
    house_number = fields.String(load_default=None, allow_none=True)
    receive_emails = fields.Boolean(load_default=True)
    custom_fields = fields.Dict(keys=fields.String(), values=fields.Raw(), load_default=dict)

    @validates("email")
    def validate_email(self, value, **kwargs):
        _validar_email(value)


class LoginSchema(ma.Schema):
    class Meta:
        unknown = EXCLUDE

    identifier = fields.String(required=True)
    password = fields.String(required=True, load_only=True)


class RecuperarSchema(ma.Schema):
    identifier = fields.String(required=True)


class RestablecerSchema(ma.Schema):
    token = fields.String(required=True)
    password = fields.String(required=True, load_only=True)
