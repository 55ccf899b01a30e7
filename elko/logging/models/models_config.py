from typing import Any

from .entry import Entry


# Maps a level name such as "info" to the entry model logged under it and
# the field values every entry of that model carries.
ModelsConfig = dict[
    str,
    tuple[
        type[Entry],
        dict[str, Any],
    ],
]
