import csv
import io
import zipfile
from xml.sax.saxutils import escape

from .generator import GenerationResult
from .storage import sanitize

# ВНИМАНИЕ - мок без реальной геометрии обхода, только точка цели.
# Настоящий генератор подключается через GENERATOR=module:attr.


def _kml(project_name: str, target: dict) -> str:
    name = escape(str(target.get("name") or project_name))
    lat = float(target.get("latitude", 0) or 0)
    lon = float(target.get("longitude", 0) or 0)
    return (
        '<?xml version="1.0" encoding="UTF-8"?>\n'
        '<kml xmlns="http://www.opengis.net/kml/2.2">\n'
        "  <Document>\n"
        f"    <name>{escape(project_name)}</name>\n"
        "    <Placemark>\n"
        f"      <name>{name}</name>\n"
        f"      <Point><coordinates>{lon},{lat},0</coordinates></Point>\n"
        "    </Placemark>\n"
        "  </Document>\n"
        "</kml>\n"
    )


def _csv(target: dict) -> str:
    buf = io.StringIO()
    writer = csv.writer(buf)
    writer.writerow(["name", "latitude", "longitude"])
    writer.writerow([target.get("name") or "", target.get("latitude", 0), target.get("longitude", 0)])
    return buf.getvalue()


def _kmz(kml: str) -> bytes:
    buf = io.BytesIO()
    with zipfile.ZipFile(buf, "w", zipfile.ZIP_DEFLATED) as zf:
        zf.writestr("doc.kml", kml)
    return buf.getvalue()


def generate(request: dict) -> GenerationResult:
    project_name = request.get("ProjectName") or "project"
    target = request.get("Target") or {}
    base = sanitize(project_name)
    kml = _kml(project_name, target)
    return GenerationResult(
        files={
            f"{base}.kml": kml.encode("utf-8"),
            f"{base}.csv": _csv(target).encode("utf-8"),
            f"{base}.kmz": _kmz(kml),
        },
        summary={
            "projectName": project_name,
            "target": target,
            "sweeper": request.get("Sweeper") or {},
            "points": 1,
        },
    )
