from marshmallow import EXCLUDE, fields, validate, validates, validates_schema, ValidationError

from comunidad.extensions import ma
from comunidad.services.config_service import CAMPOS_ORDENABLES, CLAVES_OBLIGATORIAS, CLAVES_SISTEMA

DIRECCIONES = ("asc", "desc")
MODOS_VISIBILIDAD = ("public", "staff_only")


class SortOptionSchema(ma.Schema):
    id = fields.String(required=True)
    label = fields.String(required=True)
    field = fields.String(required=True, validate=validate.OneOf(CAMPOS_ORDENABLES))
    direction = fields.String(required=True, validate=validate.OneOf(DIRECCIONES))
    active = fields.Boolean(required=True)

    @validates("label")
    def validate_label(self, value, **kwargs):
        if not value.strip():
            raise ValidationError("La etiqueta no puede estar vacía.")


class UserFieldSchema(ma.Schema):
    id = fields.String(required=True)
    key = fields.String(required=True)
    label = fields.String(required=True)
    placeholder = fields.String(load_default="")
    active = fields.Boolean(required=True)
    isSystem = fields.Boolean(required=True)


class ViewConfigSchema(ma.Schema):
    class Meta:
        unknown = EXCLUDE

    showLocation = fields.Boolean()
    showDate = fields.Boolean()
    showUser = fields.Boolean()
    showUserName = fields.Boolean()
    showUserHouse = fields.Boolean()
    userVisibilityMode = fields.String(validate=validate.OneOf(MODOS_VISIBILIDAD))
    showPriority = fields.Boolean()
    showCategory = fields.Boolean()


class AppConfigSchema(ma.Schema):
    """Documento completo que guarda el panel de ajustes."""

    categories = fields.List(fields.String(), required=True)
    sortOptions = fields.List(fields.Nested(SortOptionSchema), required=True)
    userFields = fields.List(fields.Nested(UserFieldSchema), required=True)
    pendingAccountMessage = fields.String(required=True)
    viewConfig = fields.Nested(ViewConfigSchema, required=True)

    @validates("categories")
    def validate_categories(self, value, **kwargs):
        if any(not c.strip() for c in value):
            raise ValidationError("Las categorías no pueden estar vacías.")
        if len(set(value)) != len(value):
            raise ValidationError("Categoría ya existe.")

    @validates("sortOptions")
    def validate_sort_options(self, value, **kwargs):
        ids = [o["id"] for o in value]
        if len(set(ids)) != len(ids):
            raise ValidationError("Hay reglas de ordenación con el mismo id.")

    @validates("userFields")
    def validate_user_fields(self, value, **kwargs):
        por_clave = {f["key"]: f for f in value if f.get("isSystem")}
        faltan = [k for k in CLAVES_SISTEMA if k not in por_clave]
        if faltan:
            raise ValidationError(f"Faltan campos de sistema: {', '.join(faltan)}")
        if any(not por_clave[k]["active"] for k in CLAVES_OBLIGATORIAS):
            raise ValidationError("Usuario y contraseña son obligatorios y no se pueden ocultar.")

    @validates_schema
    def validate_mensaje(self, data, **kwargs):
        if not (data.get("pendingAccountMessage") or "").strip():
            raise ValidationError("El mensaje para cuentas pendientes es obligatorio.", "pendingAccountMessage")


class CategoriaSchema(ma.Schema):
    name = fields.String(required=True)


class MoverCategoriaSchema(ma.Schema):
    direccion = fields.String(required=True, validate=validate.OneOf(("up", "down")))


class OpcionOrdenEntradaSchema(ma.Schema):
    class Meta:
        unknown = EXCLUDE

    label = fields.String()
    field = fields.String()
    direction = fields.String()
    active = fields.Boolean()


class CampoUsuarioEntradaSchema(ma.Schema):
    class Meta:
        unknown = EXCLUDE

    label = fields.String()
    placeholder = fields.String(allow_none=True)


class MensajePendienteSchema(ma.Schema):
    message = fields.String(required=True)
