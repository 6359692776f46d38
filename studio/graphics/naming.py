"""
Naming helpers shared by the code generator and the preview runtime.
"""

import re

_CAMEL_BOUNDARY = re.compile(r"(?<=[a-z0-9])([A-Z])")
_ID_SEPARATORS = re.compile(r"[-_]+")


def kebab_case(name: str) -> str:
    """Convert a camelCase style property to its CSS name (`fontSize` -> `font-size`)."""
    return _CAMEL_BOUNDARY.sub(r"-\1", name).lower()


def pascal_case(slug: str) -> str:
    """`lower-third-demo` -> `LowerThirdDemo`. Empty segments are dropped."""
    return "".join(part[:1].upper() + part[1:] for part in _ID_SEPARATORS.split(slug) if part)


def component_class_name(manifest_id: str) -> str:
    """Class name of the generated component; always a valid JS identifier for slug ids."""
    name = pascal_case(manifest_id) + "Graphic"
    if name[0].isdigit():
        name = "_" + name
    return name


def tag_name(manifest_id: str) -> str:
    return f"{manifest_id}-graphic"
