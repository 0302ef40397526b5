from flask import Blueprint, request
from flask_jwt_extended import jwt_required

from comunidad.schemas.config_schemas import (
    AppConfigSchema,
    CampoUsuarioEntradaSchema,
    CategoriaSchema,
    MensajePendienteSchema,
    MoverCategoriaSchema,
    OpcionOrdenEntradaSchema,
    ViewConfigSchema,
)
from comunidad.services import ajustes_service, config_service
from comunidad.utils.responses import success_response
from comunidad.utils.security import require_admin

bp = Blueprint("config", __name__)


def _payload() -> dict:
    return request.get_json(silent=True) or {}


@bp.get("")
def obtener_config():
    # Pública: la pantalla de registro necesita categorías y campos
    return success_response(data=config_service.obtener_config(), message="OK")


@bp.put("")
@jwt_required()
def guardar_config():
    require_admin()
    cfg = AppConfigSchema().load(_payload())
    config_service.guardar_config(cfg)
    return success_response(data=config_service.obtener_config(), message="Configuración guardada")


# --- Categorías ---

@bp.post("/categorias")
@jwt_required()
def crear_categoria():
    require_admin()
    data = CategoriaSchema().load(_payload())
    cfg = ajustes_service.crear_categoria(data["name"])
    return success_response(data=cfg["categories"], message="Categoría añadida", status_code=201)


@bp.patch("/categorias/<int:indice>")
@jwt_required()
def renombrar_categoria(indice: int):
    require_admin()
    data = CategoriaSchema().load(_payload())
    cfg = ajustes_service.renombrar_categoria(indice, data["name"])
    return success_response(data=cfg["categories"], message="Categoría actualizada")


@bp.delete("/categorias/<int:indice>")
@jwt_required()
def eliminar_categoria(indice: int):
    require_admin()
    cfg = ajustes_service.eliminar_categoria(indice)
    return success_response(data=cfg["categories"], message="Categoría eliminada")


@bp.post("/categorias/<int:indice>/mover")
@jwt_required()
def mover_categoria(indice: int):
    require_admin()
    data = MoverCategoriaSchema().load(_payload())
    cfg = ajustes_service.mover_categoria(indice, data["direccion"])
    return success_response(data=cfg["categories"], message="OK")


# --- Reglas de ordenación ---

@bp.get("/orden")
@jwt_required()
def listar_opciones_orden():
    # Los vecinos solo ven las activas; el panel de ajustes usa GET /api/config
    return success_response(data=config_service.opciones_orden_activas(), message="OK")


@bp.post("/orden")
@jwt_required()
def crear_opcion_orden():
    require_admin()
    data = OpcionOrdenEntradaSchema().load(_payload())
    opcion = ajustes_service.crear_opcion_orden(data)
    return success_response(data=opcion, message="Regla de ordenación creada", status_code=201)


@bp.patch("/orden/<opcion_id>")
@jwt_required()
def actualizar_opcion_orden(opcion_id: str):
    require_admin()
    data = OpcionOrdenEntradaSchema().load(_payload())
    opcion = ajustes_service.actualizar_opcion_orden(opcion_id, data)
    return success_response(data=opcion, message="Regla de ordenación actualizada")


@bp.post("/orden/<opcion_id>/alternar")
@jwt_required()
def alternar_opcion_orden(opcion_id: str):
    require_admin()
    opcion = ajustes_service.alternar_opcion_orden(opcion_id)
    return success_response(data=opcion, message="OK")


@bp.delete("/orden/<opcion_id>")
@jwt_required()
def eliminar_opcion_orden(opcion_id: str):
    require_admin()
    cfg = ajustes_service.eliminar_opcion_orden(opcion_id)
    return success_response(data=cfg["sortOptions"], message="Regla de ordenación eliminada")


# --- Campos del formulario de registro ---

@bp.get("/campos-usuario")
def listar_campos_usuario():
    return success_response(data=config_service.campos_registro_activos(), message="OK")


@bp.post("/campos-usuario")
@jwt_required()
def crear_campo_usuario():
    require_admin()
    data = CampoUsuarioEntradaSchema().load(_payload())
    campo = ajustes_service.crear_campo_usuario(data)
    return success_response(data=campo, message="Campo creado", status_code=201)


@bp.patch("/campos-usuario/<campo_id>")
@jwt_required()
def actualizar_campo_usuario(campo_id: str):
    require_admin()
    data = CampoUsuarioEntradaSchema().load(_payload())
    campo = ajustes_service.actualizar_campo_usuario(campo_id, data)
    return success_response(data=campo, message="Campo actualizado")


@bp.post("/campos-usuario/<campo_id>/alternar")
@jwt_required()
def alternar_campo_usuario(campo_id: str):
    require_admin()
    campo = ajustes_service.alternar_campo_usuario(campo_id)
    return success_response(data=campo, message="OK")


@bp.delete("/campos-usuario/<campo_id>")
@jwt_required()
def eliminar_campo_usuario(campo_id: str):
    require_admin()
    cfg = ajustes_service.eliminar_campo_usuario(campo_id)
    return success_response(data=cfg["userFields"], message="Campo eliminado")


# --- Mensaje y vista ---

@bp.put("/mensaje-pendiente")
@jwt_required()
def actualizar_mensaje_pendiente():
    require_admin()
    data = MensajePendienteSchema().load(_payload())
    cfg = ajustes_service.actualizar_mensaje_pendiente(data["message"])
    return success_response(data={"pendingAccountMessage": cfg["pendingAccountMessage"]}, message="Mensaje guardado")


@bp.put("/vista")
@jwt_required()
def actualizar_vista():
    require_admin()
    data = ViewConfigSchema().load(_payload())
    cfg = ajustes_service.actualizar_vista(data)
    return success_response(data=cfg["viewConfig"], message="Vista actualizada")
