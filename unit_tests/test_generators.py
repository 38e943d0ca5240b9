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

import json

import pytest

from docstress.errors import ConfigError
from docstress.generators import (
    JsonDocumentGenerator,
    RandomDocumentGenerator,
    SimpleDocumentGenerator,
    create_document_generator,
)
from docstress.opmix import Operation


@pytest.mark.parametrize(
    "class_name,expected_cls",
    [("Simple", SimpleDocumentGenerator), ("json", JsonDocumentGenerator), ("RANDOM", RandomDocumentGenerator)],
)
def test_registry_lookup_is_case_insensitive(class_name, expected_cls):
    assert isinstance(create_document_generator(class_name, 64), expected_cls)


def test_unknown_generator_is_a_config_error():
    with pytest.raises(ConfigError, match="Unknown document generator class 'Nope'"):
        create_document_generator("Nope", 64)


def test_simple_generator():
    generator = create_document_generator("Simple", 16)

    assert generator.value_for("1") == b"x" * 16
    assert generator.label_for(Operation.READ) == "Get"
    assert generator.label_for(Operation.WRITE) == "Upsert"


def test_json_generator_pads_to_value_size():
    generator = create_document_generator("Json", 200)

    value = generator.value_for("key-7")

    assert len(value) == 200
    assert json.loads(value)["key"] == "key-7"
    assert generator.label_for(Operation.WRITE) == "JsonUpsert"


def test_random_generator_size_bounds():
    generator = create_document_generator("Random", 32)

    sizes = {len(generator.value_for(str(i))) for i in range(500)}

    assert min(sizes) >= 1
    assert max(sizes) <= 32
    assert generator.label_for(Operation.READ) == "RandomGet"
