# This program is free software; you can redistribute it and/or modify
# it under the terms of the GNU Affero General Public License as published by
# the Free Software Foundation; either version 3 of the License, or
# (at your option) any later version.
#
# This program is distributed in the hope that it will be useful,
# but WITHOUT ANY WARRANTY; without even the implied warranty of
# MERCHANTABILITY or FITNESS FOR A PARTICULAR PURPOSE.
#
# See LICENSE for more details.
#
# Copyright (c) 2026 ScyllaDB

"""
Document generators produce the value written for a key and name the measurement bucket
each operation's latency goes to.

A generator is picked by name (``-C/--class``) from ``DOCUMENT_GENERATORS``. One instance is
shared by every worker of a run, so implementations must be safe to call from many threads.
"""

import json
import random

from docstress.errors import ConfigError
from docstress.opmix import Operation


class DocumentGenerator:
    name = None
    labels = {Operation.READ: "Get", Operation.WRITE: "Upsert"}

    def __init__(self, value_size: int):
        self.value_size = value_size

    def value_for(self, key: str) -> bytes:
        raise NotImplementedError

    def label_for(self, operation: Operation) -> str:
        return self.labels[operation]


class SimpleDocumentGenerator(DocumentGenerator):
    """Same fixed-size payload for every key."""

    name = "Simple"

    def __init__(self, value_size: int):
        super().__init__(value_size)
        self.payload_cache = b"x" * value_size

    def value_for(self, key: str) -> bytes:
        return self.payload_cache


class JsonDocumentGenerator(DocumentGenerator):
    """Small JSON document carrying the key, padded up to value_size."""

    name = "Json"
    labels = {Operation.READ: "JsonGet", Operation.WRITE: "JsonUpsert"}

    def value_for(self, key: str) -> bytes:
        doc = {"key": key, "type": "docstress", "body": ""}
        padding = self.value_size - len(json.dumps(doc))
        if padding > 0:
            doc["body"] = "x" * padding
        return json.dumps(doc).encode("utf-8")


class RandomDocumentGenerator(DocumentGenerator):
    """Random bytes, with a size drawn uniformly from 1..value_size."""

    name = "Random"
    labels = {Operation.READ: "RandomGet", Operation.WRITE: "RandomUpsert"}

    def value_for(self, key: str) -> bytes:
        return random.randbytes(random.randint(1, self.value_size))


DOCUMENT_GENERATORS = {
    generator_cls.name.lower(): generator_cls
    for generator_cls in (SimpleDocumentGenerator, JsonDocumentGenerator, RandomDocumentGenerator)
}


def create_document_generator(class_name: str, value_size: int) -> DocumentGenerator:
    try:
        generator_cls = DOCUMENT_GENERATORS[class_name.lower()]
    except KeyError:
        known = ", ".join(cls.name for cls in DOCUMENT_GENERATORS.values())
        raise ConfigError(f"Unknown document generator class '{class_name}', expected one of: {known}") from None
    return generator_cls(value_size)
