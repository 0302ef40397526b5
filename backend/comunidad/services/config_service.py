"""
Almacén de configuración de la aplicación.

Guarda un único documento JSON (categorías, reglas de ordenación, campos del
formulario de registro, mensaje para cuentas pendientes y configuración de
vista). El almacén no valida: las reglas las aplica el editor de ajustes
(`ajustes_service`) antes de llamar a `guardar_config`.
"""

import copy
import json

from flask import current_app

from comunidad.extensions import db
from comunidad.models.configuracion_app import ConfiguracionApp
from comunidad.utils.errors import StorageError
from comunidad.utils.persistencia import confirmar_cambios

CONFIG_ID = 1

DEFAULT_CATEGORIES = [
    "General",
    "Limpieza",
    "Jardinería",
    "Electricidad",
    "Fontanería",
    "Ascensores",
    "Pintura",
    "Suelos/Pavimento",
]

DEFAULT_PENDING_MSG = "Tu cuenta está pendiente de aprobación."

CAMPOS_ORDENABLES = (
    "created_at",
    "updated_at",
    "priority",
    "status",
    "title",
    "category",
    "user_name",
    "user_house",
    "location",
)

DEFAULT_SORT_OPTIONS = [
    {"id": "sort_recientes", "label": "Más recientes", "field": "created_at", "direction": "desc", "active": True},
    {"id": "sort_antiguas", "label": "Más antiguas", "field": "created_at", "direction": "asc", "active": True},
    {"id": "sort_prioridad", "label": "Prioridad", "field": "priority", "direction": "desc", "active": True},
    {"id": "sort_actualizadas", "label": "Última actualización", "field": "updated_at", "direction": "desc", "active": True},
]

CLAVES_SISTEMA = ("username", "password", "email", "full_name", "house_number", "role")
CLAVES_OBLIGATORIAS = ("username", "password")

SYSTEM_USER_FIELDS = [
    {"id": "sys_username", "key": "username", "label": "Usuario", "placeholder": "nombre.usuario", "active": True, "isSystem": True},
    {"id": "sys_password", "key": "password", "label": "Contraseña", "placeholder": "••••••", "active": True, "isSystem": True},
    {"id": "sys_email", "key": "email", "label": "Correo Electrónico", "placeholder": "tu@email.com", "active": True, "isSystem": True},
    {"id": "sys_fullname", "key": "full_name", "label": "Nombre Completo", "placeholder": "Nombre y Apellidos", "active": True, "isSystem": True},
    {"id": "sys_house", "key": "house_number", "label": "Propiedad / Casa", "placeholder": "Ej: 1º A", "active": True, "isSystem": True},
    {"id": "sys_role", "key": "role", "label": "Rol", "placeholder": "", "active": True, "isSystem": True},
]

DEFAULT_VIEW_CONFIG = {
    "showLocation": True,
    "showDate": True,
    "showUser": True,
    "showUserName": True,
    "showUserHouse": True,
    "userVisibilityMode": "public",
    "showPriority": True,
    "showCategory": True,
}


def config_por_defecto() -> dict:
    return copy.deepcopy(
        {
            "categories": DEFAULT_CATEGORIES,
            "sortOptions": DEFAULT_SORT_OPTIONS,
            "userFields": SYSTEM_USER_FIELDS,
            "pendingAccountMessage": DEFAULT_PENDING_MSG,
            "viewConfig": DEFAULT_VIEW_CONFIG,
        }
    )


def _campo_legado(nombre: str) -> dict:
    return {
        "id": f"uf_legacy_{nombre}",
        "key": nombre,
        "label": nombre,
        "placeholder": "",
        "active": True,
        "isSystem": False,
    }


def _migrar(datos: dict) -> tuple[dict, bool]:
    """Completa un documento guardado con versiones anteriores.

    Devuelve el documento actualizado y si hubo que cambiar algo.
    """
    cfg = copy.deepcopy(datos)
    cambiado = False

    if not isinstance(cfg.get("categories"), list):
        cfg["categories"] = list(DEFAULT_CATEGORIES)
        cambiado = True

    if not isinstance(cfg.get("sortOptions"), list):
        cfg["sortOptions"] = copy.deepcopy(DEFAULT_SORT_OPTIONS)
        cambiado = True

    campos = cfg.get("userFields")
    if not isinstance(campos, list):
        campos = []
        cambiado = True

    # Versiones antiguas guardaban una lista plana de nombres
    legado = cfg.pop("customFields", None)
    if legado is not None:
        cambiado = True
    nombres_legado = [c for c in campos if isinstance(c, str)] + [
        c for c in (legado or []) if isinstance(c, str)
    ]
    if any(isinstance(c, str) for c in campos):
        cambiado = True
    campos = [c for c in campos if isinstance(c, dict)]
    claves = {c.get("key") for c in campos}
    for nombre in nombres_legado:
        nombre = nombre.strip()
        if nombre and nombre not in claves:
            campos.append(_campo_legado(nombre))
            claves.add(nombre)

    for requerido in SYSTEM_USER_FIELDS:
        if requerido["key"] in claves:
            continue
        if requerido["key"] == "username":
            campos.insert(0, copy.deepcopy(requerido))
        else:
            campos.append(copy.deepcopy(requerido))
        claves.add(requerido["key"])
        cambiado = True
    cfg["userFields"] = campos

    if not isinstance(cfg.get("pendingAccountMessage"), str):
        cfg["pendingAccountMessage"] = DEFAULT_PENDING_MSG
        cambiado = True

    vista = cfg.get("viewConfig")
    if not isinstance(vista, dict):
        vista = {}
    faltantes = {k: v for k, v in DEFAULT_VIEW_CONFIG.items() if k not in vista}
    if faltantes:
        vista.update(faltantes)
        cambiado = True
    cfg["viewConfig"] = vista

    return cfg, cambiado


def obtener_config(para_escritura: bool = False) -> dict:
    """getConfig: devuelve la configuración, inicializando los valores por defecto.

    Si el documento guardado está dañado, las lecturas reciben los valores por
    defecto y las lecturas previas a una modificación fallan con StorageError.
    """
    fila = db.session.get(ConfiguracionApp, CONFIG_ID)
    if fila is None:
        cfg = config_por_defecto()
        db.session.add(ConfiguracionApp(id=CONFIG_ID, config_json=json.dumps(cfg, ensure_ascii=False)))
        confirmar_cambios("inicializar configuración")
        current_app.logger.info("[config] configuración inicializada con valores por defecto")
        return cfg

    try:
        datos = json.loads(fila.config_json)
    except (TypeError, ValueError):
        datos = None
    if not isinstance(datos, dict):
        current_app.logger.error("[config] configuración guardada corrupta o con formato inesperado")
        if para_escritura:
            raise StorageError(
                "La configuración guardada está dañada. Guarda la configuración completa para restaurarla."
            )
        return config_por_defecto()

    cfg, cambiado = _migrar(datos)
    if cambiado:
        fila.config_json = json.dumps(cfg, ensure_ascii=False)
        confirmar_cambios("migrar configuración")
        current_app.logger.info("[config] configuración migrada al formato actual")
    return cfg


def guardar_config(cfg: dict) -> bool:
    """saveConfig: reemplaza el documento completo (gana la última escritura)."""
    fila = db.session.get(ConfiguracionApp, CONFIG_ID)
    contenido = json.dumps(cfg, ensure_ascii=False)
    if fila is None:
        db.session.add(ConfiguracionApp(id=CONFIG_ID, config_json=contenido))
    else:
        fila.config_json = contenido
    confirmar_cambios("guardar configuración")
    return True


def agregar_categoria(nombre: str) -> bool:
    """addCategory: añade al final si no existe (comparación exacta)."""
    cfg = obtener_config(para_escritura=True)
    if nombre in cfg["categories"]:
        return True
    cfg["categories"].append(nombre)
    return guardar_config(cfg)


def opciones_orden_activas(cfg: dict | None = None) -> list[dict]:
    cfg = cfg or obtener_config()
    return [o for o in cfg.get("sortOptions", []) if o.get("active")]


def campos_registro_activos(cfg: dict | None = None) -> list[dict]:
    cfg = cfg or obtener_config()
    return [f for f in cfg.get("userFields", []) if f.get("active")]


def mensaje_cuenta_pendiente() -> str:
    return obtener_config().get("pendingAccountMessage") or DEFAULT_PENDING_MSG
