"""Functional programming utilities."""

from pyrsistent import PVector, freeze, pmap


def set_in(mapping, keys, new_value):
    """
    Take the old mapping and traverse it via the list of keys. The returned
    mapping will be the same as the old one, but with the resultant value set
    as ``new_value``.

    Integer keys index into vectors found on the way, so that one element of
    a list can be replaced without touching its siblings. Missing
    intermediate keys are created as empty maps.

    Note that the new value does not need to be a pyrsistent data structure -
    this function will freeze everything first.

    :param mapping: The mapping (or vector) to change values for.
    :param keys: An ordered collection of keys
    :param new_value: The value to set the keys to

    :return: A frozen copy of ``mapping`` with the new value.
    """
    if len(keys) < 1:
        raise ValueError("Must provide one or more keys")

    mapping = freeze(mapping)
    key = keys[0]
    if isinstance(mapping, PVector):
        if not isinstance(key, int):
            raise TypeError("Cannot index a list with {0!r}".format(key))
        if len(keys) == 1:
            return mapping.set(key, freeze(new_value))
        return mapping.set(key, set_in(mapping[key], keys[1:], new_value))

    if len(keys) == 1:
        return mapping.set(key, freeze(new_value))
    child = mapping.get(key, pmap())
    return mapping.set(key, set_in(child, keys[1:], new_value))
