"""
Store autoritativo: applicationHost.config (formato IIS).

Cada unidad es un <location path="..."> y su valor es el atributo
tokenChecking de:

    system.webServer/security/authentication/windowsAuthentication/extendedProtection
"""

import os
import shutil
import tempfile
import xml.etree.ElementTree as ET
from pathlib import Path
from typing import Dict, Optional

from epguard.core.errors import UnitApplyError
from epguard.core.models import TokenChecking


EXTENDED_PROTECTION_PATH = (
    "system.webServer",
    "security",
    "authentication",
    "windowsAuthentication",
    "extendedProtection",
)
TOKEN_CHECKING_ATTR = "tokenChecking"
VALID_VALUES = {v.value for v in TokenChecking}


def _parse(path: Path) -> ET.ElementTree:
    parser = ET.XMLParser(target=ET.TreeBuilder(insert_comments=True))
    return ET.parse(path, parser=parser)


class AppHostConfigStore:
    """Lectura y escritura por unidad sobre applicationHost.config"""

    def __init__(self, path: Path):
        self._path = Path(path)

    @property
    def path(self) -> Path:
        return self._path

    def _locations(self, root: ET.Element) -> Dict[str, ET.Element]:
        return {
            loc.get("path"): loc
            for loc in root.iter("location")
            if loc.get("path") is not None
        }

    def read_units(self) -> Dict[str, Optional[str]]:
        """
        Lee el valor actual de cada <location>.

        Returns:
            Dict {path: tokenChecking} (None si el atributo no existe)
        """
        root = _parse(self._path).getroot()
        units: Dict[str, Optional[str]] = {}
        for name, location in self._locations(root).items():
            node = location.find("/".join(EXTENDED_PROTECTION_PATH))
            units[name] = node.get(TOKEN_CHECKING_ATTR) if node is not None else None
        return units

    def set_unit(self, name: str, value: str) -> None:
        """
        Escribe tokenChecking en la unidad indicada.

        La escritura es atómica (archivo temporal + os.replace) para no dejar
        el archivo a medio escribir si el proceso se interrumpe.
        """
        if value not in VALID_VALUES:
            raise UnitApplyError(name, f"Valor inválido '{value}' (esperado: {', '.join(sorted(VALID_VALUES))})")

        try:
            tree = _parse(self._path)
        except ET.ParseError as e:
            raise UnitApplyError(name, f"applicationHost.config no es XML válido: {e}") from e
        except OSError as e:
            raise UnitApplyError(name, f"No se pudo leer {self._path}: {e}") from e

        location = self._locations(tree.getroot()).get(name)
        if location is None:
            raise UnitApplyError(name, "No existe <location> con ese path")

        node = location
        for tag in EXTENDED_PROTECTION_PATH:
            child = node.find(tag)
            if child is None:
                child = ET.SubElement(node, tag)
            node = child
        node.set(TOKEN_CHECKING_ATTR, value)

        self._write(tree, name)

    def _write(self, tree: ET.ElementTree, name: str) -> None:
        fd, tmp = tempfile.mkstemp(prefix=f".{self._path.name}.", dir=str(self._path.parent))
        try:
            with os.fdopen(fd, "wb") as f:
                tree.write(f, encoding="utf-8", xml_declaration=True)
            shutil.copymode(self._path, tmp)
            os.replace(tmp, self._path)
        except OSError as e:
            if os.path.exists(tmp):
                os.unlink(tmp)
            raise UnitApplyError(name, f"No se pudo escribir {self._path}: {e}") from e
