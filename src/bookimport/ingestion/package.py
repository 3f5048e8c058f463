"""Decode the container pointer, package document and navigation of an EPUB."""

from __future__ import annotations

from io import BytesIO
import logging
import posixpath
from urllib.parse import unquote
from zipfile import BadZipFile, ZipFile

from lxml import etree

from bookimport.ingestion.errors import MalformedContainerError
from bookimport.ingestion.models import ManifestItem, NavigationTitle, PackageStructure, SpineEntry
from bookimport.ingestion.normalization import normalize_whitespace

logger = logging.getLogger(__name__)

CONTAINER_PATH = "META-INF/container.xml"
NCX_MEDIA_TYPE = "application/x-dtbncx+xml"

_PARSER_OPTIONS = {
    "resolve_entities": False,
    "no_network": True,
    "load_dtd": False,
    "huge_tree": False,
}


def _parse_xml(payload: bytes, *, recover: bool = False) -> etree._Element:
    parser = etree.XMLParser(recover=recover, **_PARSER_OPTIONS)
    root = etree.fromstring(payload, parser=parser)
    if root is None:
        raise etree.XMLSyntaxError("empty document", None, 0, 0)
    return root


def _first_text(nodes: list[object]) -> str | None:
    for node in nodes:
        if hasattr(node, "itertext"):
            text = normalize_whitespace(" ".join(node.itertext()))
        else:
            text = normalize_whitespace(str(node))
        if text:
            return text
    return None


def resolve_href(base_path: str, href: str) -> str:
    """Resolve ``href`` relative to the archive member ``base_path``; drops fragments."""

    target = unquote(href.split("#", 1)[0])
    if not target:
        return ""
    joined = posixpath.join(posixpath.dirname(base_path), target)
    return posixpath.normpath(joined).lstrip("/")


def read_member(archive: ZipFile, path: str) -> bytes:
    """Read an archive member, tolerating case differences in the stored name."""

    try:
        return archive.read(path)
    except KeyError:
        folded = path.casefold()
        for name in archive.namelist():
            if name.casefold() == folded:
                return archive.read(name)
        raise


def open_archive(payload: bytes, source: str) -> ZipFile:
    try:
        return ZipFile(BytesIO(payload), "r")
    except BadZipFile as exc:
        raise MalformedContainerError(source, f"Not a valid package: {exc}") from exc


def locate_package_document(archive: ZipFile, source: str) -> str:
    """Follow the fixed container pointer to the package document path."""

    try:
        container = _parse_xml(read_member(archive, CONTAINER_PATH))
    except KeyError as exc:
        raise MalformedContainerError(source, "Not a valid package: container pointer is missing") from exc
    except etree.XMLSyntaxError as exc:
        raise MalformedContainerError(source, f"Not a valid package: unreadable container pointer: {exc}") from exc

    for rootfile in container.xpath("//*[local-name()='rootfile']"):
        full_path = (rootfile.get("full-path") or "").strip()
        if full_path:
            return full_path

    raise MalformedContainerError(source, "Not a valid package: container pointer names no package document")


def read_package_structure(archive: ZipFile, source: str) -> PackageStructure:
    """Parse title, manifest, spine and optional navigation titles."""

    package_path = locate_package_document(archive, source)
    try:
        package = _parse_xml(read_member(archive, package_path))
    except KeyError as exc:
        raise MalformedContainerError(source, f"Not a valid package: missing {package_path}") from exc
    except etree.XMLSyntaxError as exc:
        raise MalformedContainerError(source, f"Not a valid package: unreadable {package_path}: {exc}") from exc

    structure = PackageStructure(
        package_path=package_path,
        title=_first_text(package.xpath("//*[local-name()='metadata']/*[local-name()='title']")),
        author=_first_text(package.xpath("//*[local-name()='metadata']/*[local-name()='creator']")),
    )

    for item in package.xpath("//*[local-name()='manifest']/*[local-name()='item']"):
        item_id = item.get("id")
        href = item.get("href")
        if not item_id or not href:
            continue
        structure.manifest[item_id] = ManifestItem(
            id=item_id,
            path=resolve_href(package_path, href),
            media_type=item.get("media-type"),
            properties=frozenset((item.get("properties") or "").split()),
        )

    spines = package.xpath("//*[local-name()='spine']")
    if spines:
        for itemref in spines[0].xpath("./*[local-name()='itemref']"):
            idref = itemref.get("idref")
            manifest_item = structure.manifest.get(idref or "")
            if manifest_item is None:
                logger.warning("Spine references unknown manifest id %r in %s", idref, source)
                continue
            linear = (itemref.get("linear") or "yes").strip().lower() != "no"
            structure.spine.append(SpineEntry(idref=manifest_item.id, path=manifest_item.path, linear=linear))

    nav_titles = read_navigation(archive, structure, spine_toc=spines[0].get("toc") if spines else None)
    for entry in nav_titles:
        structure.navigation.setdefault(entry.path, entry.label)

    return structure


def read_navigation(
    archive: ZipFile,
    structure: PackageStructure,
    *,
    spine_toc: str | None = None,
) -> list[NavigationTitle]:
    """Best-effort ordered (path, label) list; empty when no navigation is usable."""

    nav_item = next((item for item in structure.manifest.values() if "nav" in item.properties), None)
    ncx_item = structure.manifest.get(spine_toc or "") or next(
        (item for item in structure.manifest.values() if item.media_type == NCX_MEDIA_TYPE),
        None,
    )

    for item, parse in ((nav_item, _nav_document_titles), (ncx_item, _ncx_titles)):
        if item is None:
            continue
        try:
            root = _parse_xml(read_member(archive, item.path), recover=True)
        except (KeyError, etree.XMLSyntaxError) as exc:
            logger.warning("Ignoring unreadable navigation document %s: %s", item.path, exc)
            continue
        titles = parse(root, item.path)
        if titles:
            return titles

    logger.debug("No navigation titles found in package document %s", structure.package_path)
    return []


def _nav_document_titles(root: etree._Element, nav_path: str) -> list[NavigationTitle]:
    navs = root.xpath("//*[local-name()='nav']")
    toc_navs = [nav for nav in navs if "toc" in _epub_type(nav).split()]
    scope = toc_navs or navs
    if not scope:
        return []

    titles: list[NavigationTitle] = []
    for anchor in scope[0].xpath(".//*[local-name()='a'][@href]"):
        path = resolve_href(nav_path, anchor.get("href"))
        label = normalize_whitespace(" ".join(anchor.itertext()))
        if path and label:
            titles.append(NavigationTitle(path=path, label=label))
    return titles


def _ncx_titles(root: etree._Element, ncx_path: str) -> list[NavigationTitle]:
    titles: list[NavigationTitle] = []
    for point in root.xpath("//*[local-name()='navPoint']"):
        label = _first_text(point.xpath("./*[local-name()='navLabel']/*[local-name()='text']"))
        contents = point.xpath("./*[local-name()='content']/@src")
        if not label or not contents:
            continue
        path = resolve_href(ncx_path, str(contents[0]))
        if path:
            titles.append(NavigationTitle(path=path, label=label))
    return titles


def _epub_type(element: etree._Element) -> str:
    for name, value in element.attrib.items():
        if name == "type" or name.endswith("}type"):
            return value
    return ""
