"""
JSON Schemas for the units convergence works on one at a time: OSD device
descriptors and federation zone instances.

Units that do not validate are skipped with a warning rather than failing
the whole run, so a partially filled-in fleet description still converges
the parts that are complete.
"""

from jsonschema import Draft7Validator

from pyrsistent import thaw


non_empty_string = {"type": "string", "minLength": 1}

device = {
    "type": "object",
    "description": "One entry of ceph.osd.devices",
    "properties": {
        "data": non_empty_string,
        "journal": non_empty_string,
        "type": {"type": ["string", "null"]},
        "data_type": {"type": ["string", "null"]},
        "journal_type": {"type": ["string", "null"]},
        "backendstore": {"type": ["string", "null"]},
        "encrypted": {"type": ["boolean", "null"]},
        "status": {"type": ["string", "null"]},
    },
    "required": ["data", "journal"],
}

zone_instance = {
    "type": "object",
    "description": "One entry of federated_zone_instances",
    "properties": {
        "name": non_empty_string,
        "zonegroup": non_empty_string,
        "url": non_empty_string,
        "port": {"type": ["integer", "string"]},
        "realm": {"type": ["string", "null"]},
        "s3hostnames": {"type": ["array", "string", "null"],
                        "items": {"type": "string"}},
        "s3hostnames_website": {"type": ["array", "string", "null"],
                                "items": {"type": "string"}},
    },
    "required": ["name", "zonegroup", "url", "port"],
}


def validation_errors(data, schema):
    """
    Validate ``data`` (frozen or not) against ``schema``.

    :return: list of human readable problems, empty when valid.
    """
    validator = Draft7Validator(schema)
    return sorted(
        '{0}: {1}'.format('.'.join(str(p) for p in error.path) or '<root>',
                          error.message)
        for error in validator.iter_errors(thaw(data)))
