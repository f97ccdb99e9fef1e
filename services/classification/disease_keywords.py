"""Keyword table used to infer an image type from its disease label.

Entries are checked in order; the first substring hit on the lower-cased
label decides the type. All leaf entries precede the fruit entries.
"""

from typing import Tuple

LEAF_KEYWORDS: Tuple[str, ...] = (
    "anthracnose",
    "powdery mildew",
    "sooty mould",
    "sooty mold",
    "die back",
    "dieback",
    "bacterial canker",
    "gall midge",
    "cutting weevil",
    "leaf spot",
    "blight",
    "canker",
    "wilt",
    "mildew",
    "leaf",
)

FRUIT_KEYWORDS: Tuple[str, ...] = (
    "black mould rot",
    "black mold rot",
    "stem end rot",
    "alternaria",
    "fruit rot",
    "rot",
    "mold",
    "mould",
    "decay",
    "fruit",
)

KEYWORD_TABLE: Tuple[Tuple[str, str], ...] = tuple(
    [(keyword, "leaf") for keyword in LEAF_KEYWORDS]
    + [(keyword, "fruit") for keyword in FRUIT_KEYWORDS]
)

# Labels such as "Healthy" carry no type information; they default to leaf.
HEALTHY_KEYWORD = "healthy"
HEALTHY_DEFAULT_TYPE = "leaf"
