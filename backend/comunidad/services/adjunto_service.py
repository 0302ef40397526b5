"""
Adjuntos de incidencias: validación de metadatos, subida de archivos y cuota.

Las imágenes subidas se redimensionan al ancho máximo configurado y se
recomprimen a JPEG con Pillow; los vídeos se guardan tal cual. La suma de
`Adjunto.tamano_bytes` nunca supera `STORAGE_QUOTA_BYTES`.
"""
import base64
import binascii
import errno
import io
import os
import uuid
from pathlib import Path

from flask import current_app
from PIL import Image, UnidentifiedImageError
from sqlalchemy import func

from comunidad.extensions import db
from comunidad.models.adjunto import TIPOS_ADJUNTO, Adjunto
from comunidad.models.incidencia import Incidencia
from comunidad.utils.errors import CapacityError, DataValidationError, NotFoundError, StorageError
from comunidad.utils.persistencia import confirmar_cambios

EXTENSIONES_IMAGEN = {".jpg", ".jpeg", ".png", ".webp", ".gif"}
EXTENSIONES_VIDEO = {".mp4", ".webm", ".mov"}

PREFIJO_URL = "/uploads/incidencias/"


def _limite(tipo: str) -> int:
    clave = "MAX_IMAGE_SIZE" if tipo == "image" else "MAX_VIDEO_SIZE"
    return int(current_app.config.get(clave) or 0)


def bytes_ocupados() -> int:
    return int(db.session.query(func.coalesce(func.sum(Adjunto.tamano_bytes), 0)).scalar() or 0)


def comprobar_cuota(bytes_nuevos: int) -> None:
    if bytes_nuevos <= 0:
        return
    cuota = int(current_app.config.get("STORAGE_QUOTA_BYTES") or 0)
    ocupados = bytes_ocupados()
    if cuota and ocupados + bytes_nuevos > cuota:
        current_app.logger.error(
            "[adjuntos] cuota superada ocupados=%s nuevos=%s cuota=%s", ocupados, bytes_nuevos, cuota
        )
        raise CapacityError()


def _tamano_data_url(url: str) -> int:
    """Bytes reales de un `data:` URL en base64 (0 si no lo es)."""
    if not url.startswith("data:"):
        return 0
    cabecera, _, contenido = url.partition(",")
    if ";base64" not in cabecera:
        return len(contenido.encode("utf-8"))
    try:
        return len(base64.b64decode(contenido, validate=True))
    except (binascii.Error, ValueError):
        raise DataValidationError("El adjunto embebido no es base64 válido.")


def construir_adjuntos(entradas: list[dict]) -> list[Adjunto]:
    """Convierte metadatos de adjunto (type, url, name) en filas sin guardar."""
    adjuntos = []
    total = 0
    for entrada in entradas or []:
        tipo = entrada.get("type")
        url = str(entrada.get("url") or "").strip()
        if tipo not in TIPOS_ADJUNTO:
            raise DataValidationError(f"Tipo de adjunto inválido. Usa: {'|'.join(TIPOS_ADJUNTO)}")
        if not url:
            raise DataValidationError("El adjunto necesita una URL.", code="MISSING_REQUIRED_FIELD")

        tamano = _tamano_data_url(url)
        if tamano > _limite(tipo):
            raise DataValidationError("El adjunto supera el tamaño máximo permitido.")
        total += tamano
        adjuntos.append(Adjunto(type=tipo, url=url, name=str(entrada.get("name") or ""), tamano_bytes=tamano))

    comprobar_cuota(total)
    return adjuntos


def _directorio() -> Path:
    configurado = current_app.config.get("UPLOADS_INCIDENCIAS_DIR")
    if not configurado:
        raise StorageError("Configuración de uploads no disponible")
    directorio = Path(configurado)
    directorio.mkdir(parents=True, exist_ok=True)
    return directorio


def _optimizar_imagen(contenido: bytes) -> bytes:
    try:
        imagen = Image.open(io.BytesIO(contenido))
        imagen.load()
    except (UnidentifiedImageError, OSError):
        raise DataValidationError("El archivo no es una imagen válida.")

    # JPEG no admite transparencia: fondo blanco
    if imagen.mode in ("RGBA", "LA", "P"):
        imagen = imagen.convert("RGBA")
        fondo = Image.new("RGB", imagen.size, (255, 255, 255))
        fondo.paste(imagen, mask=imagen.split()[-1])
        imagen = fondo
    elif imagen.mode != "RGB":
        imagen = imagen.convert("RGB")

    ancho_max = int(current_app.config.get("IMAGE_MAX_WIDTH") or 800)
    if imagen.width > ancho_max:
        alto = max(1, round(imagen.height * ancho_max / imagen.width))
        imagen = imagen.resize((ancho_max, alto), Image.Resampling.LANCZOS)

    salida = io.BytesIO()
    calidad = int(current_app.config.get("IMAGE_JPEG_QUALITY") or 70)
    imagen.save(salida, format="JPEG", quality=calidad, optimize=True)
    return salida.getvalue()


def _escribir(ruta: Path, contenido: bytes) -> None:
    try:
        ruta.write_bytes(contenido)
    except OSError as err:
        if err.errno == errno.ENOSPC:
            current_app.logger.error("[adjuntos] disco lleno al escribir %s", ruta.name)
            raise CapacityError()
        current_app.logger.exception("[adjuntos] no se pudo escribir %s", ruta.name)
        raise StorageError()


def subir_archivos(id_incidencia: int, archivos, base_url: str) -> list[Adjunto]:
    """Guarda los archivos recibidos (FileStorage) como adjuntos de la incidencia."""
    incidencia = db.session.get(Incidencia, id_incidencia)
    if incidencia is None:
        raise NotFoundError("Incidencia no encontrada", code="INCIDENT_NOT_FOUND")
    if not archivos:
        raise DataValidationError(
            "Debes enviar al menos un archivo en el campo 'archivos'.", code="MISSING_REQUIRED_FIELD"
        )

    preparados = []
    for archivo in archivos:
        original = archivo.filename or ""
        ext = os.path.splitext(original)[1].lower()
        if ext in EXTENSIONES_IMAGEN:
            tipo = "image"
        elif ext in EXTENSIONES_VIDEO:
            tipo = "video"
        else:
            raise DataValidationError(
                "Formato inválido. Solo se permiten imágenes (jpg, png, webp, gif) o vídeos (mp4, webm, mov)."
            )

        contenido = archivo.read()
        if len(contenido) > _limite(tipo):
            raise DataValidationError(f"{original} supera el tamaño máximo permitido.")

        if tipo == "image":
            contenido = _optimizar_imagen(contenido)
            ext = ".jpg"
        preparados.append((tipo, original, ext, contenido))

    comprobar_cuota(sum(len(c) for _, _, _, c in preparados))

    directorio = _directorio()
    nuevos = []
    for tipo, original, ext, contenido in preparados:
        nombre_archivo = f"{uuid.uuid4().hex}{ext}"
        _escribir(directorio / nombre_archivo, contenido)
        adjunto = Adjunto(
            type=tipo,
            url=f"{base_url.rstrip('/')}{PREFIJO_URL}{nombre_archivo}",
            name=original,
            tamano_bytes=len(contenido),
            archivo=nombre_archivo,
        )
        incidencia.attachments.append(adjunto)
        nuevos.append(adjunto)

    incidencia.tocar()
    try:
        confirmar_cambios("subir adjuntos")
    except StorageError:
        for adjunto in nuevos:
            borrar_archivo(adjunto.archivo)
        raise

    current_app.logger.info("[adjuntos] %s archivos subidos a incidencia=%s", len(nuevos), id_incidencia)
    return nuevos


def borrar_archivo(nombre_archivo: str | None) -> None:
    if not nombre_archivo:
        return
    configurado = current_app.config.get("UPLOADS_INCIDENCIAS_DIR")
    if not configurado:
        return
    ruta = Path(configurado) / os.path.basename(nombre_archivo)
    try:
        ruta.unlink(missing_ok=True)
    except OSError:
        current_app.logger.warning("[adjuntos] no se pudo borrar el archivo %s", ruta.name)


def eliminar_adjunto(id_incidencia: int, id_adjunto: int) -> None:
    adjunto = db.session.get(Adjunto, id_adjunto)
    if adjunto is None or adjunto.id_incidencia != id_incidencia:
        raise NotFoundError("Adjunto no encontrado")

    incidencia = adjunto.incidencia
    nombre_archivo = adjunto.archivo
    incidencia.attachments.remove(adjunto)
    incidencia.tocar()
    confirmar_cambios("eliminar adjunto")
    borrar_archivo(nombre_archivo)
    current_app.logger.info("[adjuntos] adjunto %s eliminado de incidencia=%s", id_adjunto, id_incidencia)
