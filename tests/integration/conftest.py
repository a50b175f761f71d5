# Copyright (c) 2025 Henru Wang
# All rights reserved.

"""Shared fixtures for integration tests.

Provides a small in-memory dataset and a YAML config file for end-to-end
pipeline tests.
"""

from dataclasses import dataclass
from pathlib import Path
from typing import List

import pytest
import yaml


@dataclass(frozen=True)
class Order:
    order_id: int
    customer: str
    region: str
    amount: float
    items: tuple


@pytest.fixture
def orders() -> List[Order]:
    """A fixed list of orders spanning three regions."""
    return [
        Order(1, "ada", "north", 120.0, ("pen", "ink")),
        Order(2, "bob", "south", 35.5, ("paper",)),
        Order(3, "ada", "north", 80.0, ("pen",)),
        Order(4, "cyd", "east", 210.25, ("desk", "lamp", "pen")),
        Order(5, "bob", "south", 12.0, ()),
        Order(6, "dee", "east", 99.99, ("ink", "paper")),
        Order(7, "ada", "south", 45.0, ("lamp",)),
    ]


@pytest.fixture
def config_file(tmp_path: Path) -> Path:
    """A .streamlab.yml with two workers and at least two elements per chunk."""
    config_path = tmp_path / ".streamlab.yml"
    with open(config_path, "w") as f:
        yaml.dump({"parallelism": 2, "split_factor": 2, "min_chunk_size": 2}, f)
    return config_path
