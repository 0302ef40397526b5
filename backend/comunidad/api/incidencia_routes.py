from flask import Blueprint, request
from flask_jwt_extended import jwt_required

from comunidad.models.incidencia import ESTADOS_CERRADOS
from comunidad.schemas.incidencia_schemas import (
    AdjuntoSchema,
    AvisoLoteSchema,
    BorradoLoteSchema,
    EstadoSchema,
    ImportacionSchema,
    IncidenciaCrearSchema,
    IncidenciaEditarSchema,
    NotaCrearSchema,
    NotaSchema,
)
from comunidad.services import (
    adjunto_service,
    config_service,
    importacion_service,
    incidencia_service,
    notificacion_service,
)
from comunidad.utils.errors import DataValidationError, ForbiddenError, NotFoundError
from comunidad.utils.responses import success_response
from comunidad.utils.security import require_admin, require_cuenta_activa, require_staff

bp = Blueprint("incidencias", __name__)

nota_schema = NotaSchema()
adjuntos_schema = AdjuntoSchema(many=True)

ESTADO_REAPERTURA = "en_proceso"


def _to_dict(incidencia, visor):
    return incidencia_service.incidencia_to_dict(incidencia, visor, config_service.obtener_config())


def _require_dueno_o_staff(incidencia, usuario) -> None:
    if not (usuario.es_staff or incidencia.user_id == usuario.id):
        raise ForbiddenError()


@bp.get("/ping")
def ping_incidencias():
    return success_response(message="incidencias ok")


@bp.get("")
@jwt_required()
def listar_incidencias():
    usuario = require_cuenta_activa()
    data = incidencia_service.listar_filtradas(
        usuario,
        estado=request.args.get("estado", "all"),
        categoria=request.args.get("categoria", "all"),
        orden=request.args.get("orden"),
    )
    return success_response(data=data, message="OK")


@bp.post("")
@jwt_required()
def crear_incidencia():
    usuario = require_cuenta_activa()
    data = IncidenciaCrearSchema().load(request.get_json(silent=True) or {})
    incidencia = incidencia_service.crear(data, usuario)
    return success_response(data=_to_dict(incidencia, usuario), message="Incidencia creada", status_code=201)


@bp.get("/<int:id_incidencia>")
@jwt_required()
def detalle_incidencia(id_incidencia: int):
    usuario = require_cuenta_activa()
    incidencia = incidencia_service.obtener(id_incidencia)
    return success_response(data=_to_dict(incidencia, usuario), message="OK")


@bp.patch("/<int:id_incidencia>")
@jwt_required()
def editar_incidencia(id_incidencia: int):
    usuario = require_cuenta_activa()
    _require_dueno_o_staff(incidencia_service.obtener(id_incidencia), usuario)
    cambios = IncidenciaEditarSchema().load(request.get_json(silent=True) or {})
    incidencia = incidencia_service.actualizar(id_incidencia, cambios)
    return success_response(data=_to_dict(incidencia, usuario), message="Incidencia actualizada")


@bp.delete("/<int:id_incidencia>")
@jwt_required()
def eliminar_incidencia(id_incidencia: int):
    require_admin()
    incidencia_service.eliminar(id_incidencia)
    return success_response(data={"deleted": True}, message="Incidencia eliminada")


@bp.post("/eliminar-lote")
@jwt_required()
def eliminar_lote():
    require_admin()
    data = BorradoLoteSchema().load(request.get_json(silent=True) or {})
    eliminadas = incidencia_service.eliminar_lote(data["ids"])
    return success_response(data={"eliminadas": eliminadas}, message="Incidencias eliminadas")


@bp.patch("/<int:id_incidencia>/estado")
@jwt_required()
def cambiar_estado(id_incidencia: int):
    usuario = require_staff()
    data = EstadoSchema().load(request.get_json(silent=True) or {})

    incidencia = incidencia_service.obtener(id_incidencia)
    nuevo = data["status"]
    if incidencia.status in ESTADOS_CERRADOS and nuevo not in (incidencia.status, ESTADO_REAPERTURA):
        raise DataValidationError(
            "Una incidencia cerrada solo puede reabrirse como 'en proceso'.",
            code="INVALID_TRANSITION",
            status_code=409,
        )

    if not incidencia_service.cambiar_estado(id_incidencia, nuevo):
        raise NotFoundError("Incidencia no encontrada", code="INCIDENT_NOT_FOUND")
    return success_response(
        data=_to_dict(incidencia_service.obtener(id_incidencia), usuario),
        message="Estado actualizado",
    )


@bp.post("/<int:id_incidencia>/notas")
@jwt_required()
def agregar_nota(id_incidencia: int):
    usuario = require_cuenta_activa()
    _require_dueno_o_staff(incidencia_service.obtener(id_incidencia), usuario)
    data = NotaCrearSchema().load(request.get_json(silent=True) or {})
    nota = incidencia_service.agregar_nota(id_incidencia, data["content"], usuario.nombre_visible)
    return success_response(data=nota_schema.dump(nota), message="Nota añadida", status_code=201)


@bp.post("/<int:id_incidencia>/adjuntos")
@jwt_required()
def subir_adjuntos(id_incidencia: int):
    usuario = require_cuenta_activa()
    _require_dueno_o_staff(incidencia_service.obtener(id_incidencia), usuario)
    base = (request.host_url or "http://127.0.0.1:5000/").rstrip("/")
    nuevos = adjunto_service.subir_archivos(id_incidencia, request.files.getlist("archivos"), base)
    return success_response(data=adjuntos_schema.dump(nuevos), message="Adjuntos subidos", status_code=201)


@bp.delete("/<int:id_incidencia>/adjuntos/<int:id_adjunto>")
@jwt_required()
def eliminar_adjunto(id_incidencia: int, id_adjunto: int):
    usuario = require_cuenta_activa()
    _require_dueno_o_staff(incidencia_service.obtener(id_incidencia), usuario)
    adjunto_service.eliminar_adjunto(id_incidencia, id_adjunto)
    return success_response(data={"deleted": True}, message="Adjunto eliminado")


@bp.post("/notificar")
@jwt_required()
def notificar():
    require_staff()
    data = AvisoLoteSchema().load(request.get_json(silent=True) or {})
    resultado = notificacion_service.enviar_aviso_lote(data["ids"], data["message"])
    return success_response(data=resultado, message=f"Aviso enviado a {resultado['enviados']} vecinos")


@bp.post("/importar")
@jwt_required()
def importar():
    admin = require_admin()
    archivo = request.files.get("archivo")
    if archivo is not None:
        texto = archivo.read().decode("utf-8-sig", errors="replace")
    else:
        texto = ImportacionSchema().load(request.get_json(silent=True) or {})["text"]

    resultado = importacion_service.importar(texto, admin)
    return success_response(
        data={
            "importadas": resultado["importadas"],
            "omitidas": resultado["omitidas"],
            "incidencias": [_to_dict(i, admin) for i in resultado["incidencias"]],
        },
        message=f"Se importaron {resultado['importadas']} incidencias",
        status_code=201,
    )
