from marshmallow import EXCLUDE, fields, validate, validates

from comunidad.extensions import ma
from comunidad.models.usuario import ROLES
from comunidad.schemas.auth_schemas import RegistroSchema, _validar_email


class UsuarioAdminCrearSchema(RegistroSchema):
    role = fields.String(load_default="user", validate=validate.OneOf(ROLES))


class PreferenciasSchema(ma.Schema):
    class Meta:
        unknown = EXCLUDE

    receive_emails = fields.Boolean()
    full_name = fields.String(allow_none=True)
    house_number = fields.String(allow_none=True)
    email = fields.String(allow_none=True)
    custom_fields = fields.Dict(keys=fields.String(), values=fields.Raw())

    @validates("email")
    def validate_email(self, value, **kwargs):
        _validar_email(value)


class UsuarioAdminEditarSchema(PreferenciasSchema):
    username = fields.String()
    role = fields.String(validate=validate.OneOf(ROLES))
    password = fields.String(load_only=True)


class AprobacionSchema(ma.Schema):
    aceptar = fields.Boolean(required=True)
