"""YAML utilities for configuration processing.

Mappings are loaded into ordered, case-insensitive dictionaries so that
configuration keys such as ``Work start hour`` and ``work start hour`` are
equivalent.
"""

import yaml
from pydicti import odicti


def ordered_load(stream, loader=yaml.SafeLoader, object_pairs_hook=odicti):
    """
    Load YAML mappings as ordered dictionaries.
    """

    def construct_mapping(yaml_loader, node):
        yaml_loader.flatten_mapping(node)
        return object_pairs_hook(yaml_loader.construct_pairs(node))

    # Subclass so the shared SafeLoader constructors are left untouched
    constructors = dict(getattr(loader, "yaml_constructors", {}))
    MappingLoader = type(
        "MappingLoader", (loader,), {"yaml_constructors": constructors}
    )
    MappingLoader.add_constructor(
        yaml.resolver.BaseResolver.DEFAULT_MAPPING_TAG, construct_mapping
    )

    return yaml.load(stream, MappingLoader)
