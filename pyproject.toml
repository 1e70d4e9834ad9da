[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "kptspec"
version = "0.1.0"
description = "Condition-driven specialization toolkit for kpt packages: Kptfile conditions, resource inventories and a staged specializer pipeline"
requires-python = ">=3.10"
dependencies = [
    "pyyaml",
]
keywords = ["kpt", "krm", "kubernetes", "kptfile", "specialization", "conditions"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Software Development :: Libraries :: Python Modules",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[tool.hatch.build.targets.wheel]
packages = ["kptspec"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.mypy]
python_version = "3.10"
