"""ADT XML request builders and response parsers.

ADT speaks a handful of XML dialects: ``asx:abap`` value trees, ``adtcore``
object references, Atom service documents, check-run reports and data
preview tables. Parsers return plain dicts and lists of strings; numeric
looking values are never converted, so large numbers survive untouched.
"""

import base64
import re
import xml.etree.ElementTree as ET
from typing import Any, Dict, Iterable, List, Optional, Tuple

ADTCORE_NS = "http://www.sap.com/adt/core"
ASX_NS = "http://www.sap.com/abapxml"
ATOM_NS = "http://www.w3.org/2005/Atom"
APP_NS = "http://www.w3.org/2007/app"
CHKRUN_NS = "http://www.sap.com/adt/checkrun"

for _prefix, _uri in (
    ("adtcore", ADTCORE_NS),
    ("asx", ASX_NS),
    ("atom", ATOM_NS),
    ("chkrun", CHKRUN_NS),
):
    ET.register_namespace(_prefix, _uri)

_XML_DECLARATION = '<?xml version="1.0" encoding="UTF-8"?>'
_ERROR_SEVERITIES = {"E", "A", "X"}
_LINE_FRAGMENT = re.compile(r"#start=(\d+)(?:,(\d+))?")


def local_name(tag: str) -> str:
    """Strip the ``{namespace}`` part of an element or attribute name."""
    return tag.rsplit("}", 1)[-1]


def attributes(element: ET.Element) -> Dict[str, str]:
    """Return element attributes keyed by local name."""
    return {local_name(key): value for key, value in element.attrib.items()}


def parse_xml(text: str) -> ET.Element:
    """Parse an XML document into its root element."""
    return ET.fromstring(text.encode("utf-8") if isinstance(text, str) else text)


def _iter_local(root: ET.Element, name: str) -> Iterable[ET.Element]:
    return (element for element in root.iter() if local_name(element.tag) == name)


def _text_of(root: ET.Element, name: str) -> str:
    for element in _iter_local(root, name):
        return (element.text or "").strip()
    return ""


def _serialize(root: ET.Element) -> str:
    return _XML_DECLARATION + ET.tostring(root, encoding="unicode")


# =============================================================================
# GENERIC
# =============================================================================


def parse_exception(text: str) -> Optional[Tuple[str, str]]:
    """Extract ``(message, type)`` from an ADT ``exc:exception`` document.

    Returns None when ``text`` is not an exception document.
    """
    try:
        root = parse_xml(text)
    except ET.ParseError:
        return None
    if local_name(root.tag) != "exception":
        return None

    message = _text_of(root, "message")
    exc_type = ""
    for element in _iter_local(root, "type"):
        exc_type = element.get("id", "") or (element.text or "").strip()
        break
    return message, exc_type


def element_to_value(element: ET.Element) -> Any:
    """Convert an ``asx:values`` subtree into nested dicts, lists and strings.

    Leaf elements become their text. Sibling elements sharing a tag become a
    list under that tag.
    """
    children = list(element)
    if not children:
        return (element.text or "").strip()

    result: Dict[str, Any] = {}
    for child in children:
        key = local_name(child.tag)
        value = element_to_value(child)
        if key in result:
            if not isinstance(result[key], list):
                result[key] = [result[key]]
            result[key].append(value)
        else:
            result[key] = value
    return result


def abap_values(text: str) -> Dict[str, Any]:
    """Convert the ``asx:values`` of an ``asx:abap`` document.

    A single ``DATA`` child is unwrapped.
    """
    root = parse_xml(text)
    values = next(iter(_iter_local(root, "values")), None)
    if values is None:
        return {}
    converted = element_to_value(values)
    if not isinstance(converted, dict):
        return {}
    if list(converted) == ["DATA"] and isinstance(converted["DATA"], dict):
        return converted["DATA"]
    return converted


def _as_list(value: Any) -> List[Any]:
    if value in (None, ""):
        return []
    return value if isinstance(value, list) else [value]


def _abap_document(data: Dict[str, str]) -> str:
    root = ET.Element(f"{{{ASX_NS}}}abap", {"version": "1.0"})
    values = ET.SubElement(root, f"{{{ASX_NS}}}values")
    container = ET.SubElement(values, "DATA")
    for key, value in data.items():
        ET.SubElement(container, key).text = value or None
    return _serialize(root)


# =============================================================================
# LOCKS & OBJECTS
# =============================================================================


def parse_lock(text: str) -> Dict[str, Any]:
    """Parse a ``com.sap.adt.lock.result`` document."""
    return abap_values(text)


def parse_object_references(text: str) -> List[Dict[str, str]]:
    """Return the attributes of every ``adtcore:objectReference``."""
    root = parse_xml(text)
    return [attributes(element) for element in _iter_local(root, "objectReference")]


def parse_object_structure(text: str) -> Dict[str, Any]:
    """Parse an object metadata document into its attributes and links."""
    root = parse_xml(text)
    links = [attributes(element) for element in root.iter(f"{{{ATOM_NS}}}link")]
    return {
        "objectType": local_name(root.tag),
        "metaData": attributes(root),
        "links": links,
    }


def parse_node_path(text: str) -> List[Dict[str, str]]:
    """Parse the node path of an object in the repository tree."""
    root = parse_xml(text)
    return [attributes(element) for element in _iter_local(root, "objectLinkReference")]


def parse_node_contents(text: str) -> Dict[str, Any]:
    """Parse a repository node structure into nodes and categories."""
    values = abap_values(text)
    tree = values.get("TREE_CONTENT") or {}
    categories = values.get("CATEGORIES") or {}
    object_types = values.get("OBJECT_TYPES") or {}
    return {
        "nodes": _as_list(tree.get("SEU_ADT_REPOSITORY_OBJ_NODE") if isinstance(tree, dict) else None),
        "categories": _as_list(
            categories.get("SEU_ADT_OBJECT_CATEGORY_INFO") if isinstance(categories, dict) else None
        ),
        "objectTypes": _as_list(
            object_types.get("SEU_ADT_OBJECT_TYPE_INFO") if isinstance(object_types, dict) else None
        ),
    }


# =============================================================================
# TRANSPORTS
# =============================================================================


def build_transport_check(url: str, dev_class: str = "", operation: str = "I") -> str:
    """Build the body of a transport check request."""
    return _abap_document(
        {
            "PGMID": "",
            "OBJECT": "",
            "OBJECTNAME": "",
            "DEVCLASS": dev_class,
            "SUPER_PACKAGE": "",
            "OPERATION": operation,
            "URI": url,
        }
    )


def build_create_transport(
    url: str, request_text: str, dev_class: str, transport_layer: str = ""
) -> str:
    """Build the body of a correction request creation."""
    return _abap_document(
        {
            "OPERATION": "I",
            "DEVCLASS": dev_class,
            "REQUEST_TEXT": request_text,
            "REF": url,
            "TRANSPORTLAYER": transport_layer,
        }
    )


def parse_transport_info(text: str) -> Dict[str, Any]:
    """Parse a transport check result."""
    return abap_values(text)


def transport_number_from_path(text: str) -> str:
    """Extract the request number from a created transport's object path."""
    return text.strip().rstrip("/").rsplit("/", 1)[-1]


# =============================================================================
# ACTIVATION
# =============================================================================


def build_activation(objects: Iterable[Tuple[str, str]]) -> str:
    """Build an activation request for ``(name, url)`` pairs."""
    root = ET.Element(f"{{{ADTCORE_NS}}}objectReferences")
    for name, url in objects:
        ET.SubElement(
            root,
            f"{{{ADTCORE_NS}}}objectReference",
            {f"{{{ADTCORE_NS}}}uri": url, f"{{{ADTCORE_NS}}}name": name},
        )
    return _serialize(root)


def parse_activation_result(text: str) -> Dict[str, Any]:
    """Parse an activation response.

    An empty body means the objects were activated without messages.
    """
    if not text.strip():
        return {"success": True, "messages": [], "inactive": []}

    root = parse_xml(text)
    messages = []
    for element in _iter_local(root, "msg"):
        message = attributes(element)
        message["shortText"] = " ".join(
            (txt.text or "").strip() for txt in _iter_local(element, "txt") if txt.text
        )
        messages.append(message)

    inactive = [attributes(element) for element in _iter_local(root, "ref")]
    success = not any(message.get("type") in _ERROR_SEVERITIES for message in messages)
    return {"success": success, "messages": messages, "inactive": inactive}


def parse_inactive_objects(text: str) -> List[Dict[str, str]]:
    """Parse the list of inactive objects of the current user."""
    if not text.strip():
        return []
    root = parse_xml(text)
    return [attributes(element) for element in _iter_local(root, "ref")]


# =============================================================================
# CHECK RUNS
# =============================================================================


def build_check_run(url: str, main_url: str, source: str, version: str = "active") -> str:
    """Build a syntax check run for ``source`` as the content of ``url``."""
    root = ET.Element(f"{{{CHKRUN_NS}}}checkObjectList")
    check_object = ET.SubElement(
        root,
        f"{{{CHKRUN_NS}}}checkObject",
        {f"{{{ADTCORE_NS}}}uri": main_url, f"{{{CHKRUN_NS}}}version": version},
    )
    artifacts = ET.SubElement(check_object, f"{{{CHKRUN_NS}}}artifacts")
    artifact = ET.SubElement(
        artifacts,
        f"{{{CHKRUN_NS}}}artifact",
        {
            f"{{{CHKRUN_NS}}}contentType": "text/plain; charset=utf-8",
            f"{{{CHKRUN_NS}}}uri": url,
        },
    )
    ET.SubElement(artifact, f"{{{CHKRUN_NS}}}content").text = base64.b64encode(
        source.encode("utf-8")
    ).decode("ascii")
    return _serialize(root)


def parse_check_messages(text: str) -> List[Dict[str, str]]:
    """Parse check run messages; line and offset come from the uri fragment."""
    root = parse_xml(text)
    messages = []
    for element in _iter_local(root, "checkMessage"):
        attrs = attributes(element)
        uri = attrs.get("uri", "")
        message = {
            "uri": uri,
            "type": attrs.get("type", ""),
            "text": attrs.get("shortText", ""),
        }
        match = _LINE_FRAGMENT.search(uri)
        if match:
            message["line"] = match.group(1)
            message["offset"] = match.group(2) or "0"
        messages.append(message)
    return messages


# =============================================================================
# DISCOVERY & DATA PREVIEW
# =============================================================================


def parse_discovery(text: str) -> List[Dict[str, Any]]:
    """Parse the ADT Atom service document into workspaces and collections."""
    root = parse_xml(text)
    workspaces = []
    for workspace in root.iter(f"{{{APP_NS}}}workspace"):
        title = workspace.find(f"{{{ATOM_NS}}}title")
        collections = []
        for collection in workspace.iter(f"{{{APP_NS}}}collection"):
            collection_title = collection.find(f"{{{ATOM_NS}}}title")
            collections.append(
                {
                    "href": collection.get("href", ""),
                    "title": (collection_title.text or "").strip()
                    if collection_title is not None
                    else "",
                }
            )
        workspaces.append(
            {
                "title": (title.text or "").strip() if title is not None else "",
                "collections": collections,
            }
        )
    return workspaces


def parse_table_data(text: str) -> Dict[str, Any]:
    """Parse a data preview result into columns and row dicts."""
    root = parse_xml(text)
    columns: List[Dict[str, str]] = []
    cells: List[List[str]] = []
    for column in _iter_local(root, "columns"):
        metadata = next(iter(_iter_local(column, "metadata")), None)
        meta = attributes(metadata) if metadata is not None else {}
        columns.append(
            {
                "name": meta.get("name", ""),
                "type": meta.get("type", ""),
                "description": meta.get("description", ""),
            }
        )
        cells.append([(data.text or "") for data in _iter_local(column, "data")])

    row_count = max((len(values) for values in cells), default=0)
    rows = []
    for index in range(row_count):
        rows.append(
            {
                column["name"]: values[index] if index < len(values) else ""
                for column, values in zip(columns, cells)
            }
        )

    return {
        "totalRows": _text_of(root, "totalRows"),
        "queryExecutionTime": _text_of(root, "queryExecutionTime"),
        "columns": columns,
        "rows": rows,
    }
