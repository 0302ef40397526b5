from marshmallow import EXCLUDE, fields, validate

from comunidad.extensions import ma
from comunidad.models.adjunto import TIPOS_ADJUNTO, Adjunto
from comunidad.models.incidencia import ESTADOS_INCIDENCIA, PRIORIDADES
from comunidad.models.nota import Nota


class AdjuntoSchema(ma.SQLAlchemyAutoSchema):
    class Meta:
        model = Adjunto
        load_instance = False
        fields = ("id", "type", "url", "name")


class NotaSchema(ma.SQLAlchemyAutoSchema):
    class Meta:
        model = Nota
        load_instance = False
        fields = ("id", "content", "author_name", "created_at")


class AdjuntoEntradaSchema(ma.Schema):
    class Meta:
        unknown = EXCLUDE

    type = fields.String(required=True, validate=validate.OneOf(TIPOS_ADJUNTO))
    url = fields.String(required=True)
    name = fields.String(load_default="")


class IncidenciaCrearSchema(ma.Schema):
    """Los obligatorios los comprueba el servicio para devolver su código de error."""

    class Meta:
        unknown = EXCLUDE

    title = fields.String(load_default="")
    description = fields.String(load_default="")
    category = fields.String(load_default="")
    priority = fields.String(load_default="media", validate=validate.OneOf(PRIORIDADES))
    location = fields.String(load_default="")
    attachments = fields.List(fields.Nested(AdjuntoEntradaSchema), load_default=list)


class IncidenciaEditarSchema(ma.Schema):
    class Meta:
        unknown = EXCLUDE

    title = fields.String()
    description = fields.String()
    category = fields.String()
    priority = fields.String(validate=validate.OneOf(PRIORIDADES))
    location = fields.String()
    attachments = fields.List(fields.Nested(AdjuntoEntradaSchema))
    # Versión que el cliente tenía al empezar a editar
    version = fields.Integer()


class EstadoSchema(ma.Schema):
    status = fields.String(required=True, validate=validate.OneOf(ESTADOS_INCIDENCIA))


class NotaCrearSchema(ma.Schema):
    class Meta:
        unknown = EXCLUDE

    content = fields.String(load_default="")


class AvisoLoteSchema(ma.Schema):
    ids = fields.List(fields.Integer(), required=True)
    message = fields.String(load_default="")


class BorradoLoteSchema(ma.Schema):
    ids = fields.List(fields.Integer(), required=True)


class ImportacionSchema(ma.Schema):
    text = fields.String(load_default="")
