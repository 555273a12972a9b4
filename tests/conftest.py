# -*- coding: utf-8 -*-
import pytest

from helpers import write_image


@pytest.fixture
def reference_image(tmp_path):
    """A 10x10 grayscale TIFF."""
    return write_image(tmp_path / "ref.tif", 10, 10)
