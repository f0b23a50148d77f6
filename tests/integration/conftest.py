# Copyright (c) 2025 Henru Wang
# All rights reserved.

"""Shared fixtures for integration tests.

Provides representative documented projects written as raw YAML text, the
way LMAY files are authored by hand.
"""

from pathlib import Path

import pytest


@pytest.fixture
def sample_project(tmp_path: Path) -> Path:
    """Create a documented three-level project.

    Layout:
        root.lmay               depth 0
        src/src.lmay            depth 1, linked from root.lmay
        src/api/api.lmay        depth 2, linked from src/src.lmay

    Every structure path, entry point and internal dependency exists, and
    every top-level directory is documented.

    Returns:
        Path to the project root directory
    """
    project_root = (tmp_path / "sample_project").resolve()
    (project_root / "src" / "api").mkdir(parents=True)
    (project_root / "src" / "models").mkdir()
    (project_root / "tests").mkdir()

    (project_root / "src" / "main.py").write_text("from api.routes import app\n")
    (project_root / "src" / "api" / "handlers.py").write_text("def create_invoice(): ...\n")
    (project_root / "src" / "api" / "routes.py").write_text("app = None\n")
    (project_root / "src" / "models" / "invoice.py").write_text("class Invoice: ...\n")
    (project_root / "tests" / "test_api.py").write_text("def test_routes(): ...\n")

    (project_root / "root.lmay").write_text(
        """lmay_version: "1.0"
project:
  name: billing-service
  description: Invoice generation and payment tracking
  version: 2.1.0
  languages:
    - python
  frameworks:
    - fastapi
architecture:
  pattern: Layered
  entry_points:
    - file: src/main.py
      type: application
structure:
  src:
    path: src
    type: directory
    primary_language: python
    lmay_file: src/src.lmay
  tests:
    path: tests
    type: directory
dependencies:
  external:
    - name: fastapi
      version: ">=0.100"
  internal:
    - path: src/models
hierarchy:
  depth: 0
  children:
    - src/src.lmay
"""
    )

    (project_root / "src" / "src.lmay").write_text(
        """lmay_version: "1.0"
project:
  name: billing-src
module:
  type: package
  role: Application code
structure:
  api:
    path: src/api
    type: directory
    lmay_file: api/api.lmay
  models:
    path: src/models
    type: directory
  main.py:
    path: src/main.py
    type: file
    file_count: 1
hierarchy:
  depth: 1
  parent: ../root.lmay
"""
    )

    (project_root / "src" / "api" / "api.lmay").write_text(
        """lmay_version: "1.0"
project:
  name: billing-api
interfaces:
  - type: REST
    endpoint: /invoices
structure:
  handlers.py:
    path: src/api/handlers.py
    type: file
  routes.py:
    path: src/api/routes.py
    type: file
hierarchy:
  depth: 2
  parent: ../src.lmay
"""
    )

    return project_root


@pytest.fixture
def cycle_project(tmp_path: Path) -> Path:
    """Create a project whose nested documents link in a loop.

    root.lmay -> a.lmay -> b.lmay -> a.lmay
    """
    project_root = (tmp_path / "cycle_project").resolve()
    project_root.mkdir()

    (project_root / "root.lmay").write_text(
        """lmay_version: "1.0"
project:
  name: loop-service
structure:
  a:
    lmay_file: a.lmay
"""
    )
    (project_root / "a.lmay").write_text(
        """lmay_version: "1.0"
project:
  name: loop-a
structure:
  b:
    lmay_file: b.lmay
"""
    )
    (project_root / "b.lmay").write_text(
        """lmay_version: "1.0"
project:
  name: loop-b
structure:
  a:
    lmay_file: a.lmay
"""
    )

    return project_root
