[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "nrschub"
version = "0.1.0"
description = "Hub node building blocks for a DAG ledger: unit data model, secp256k1 signatures, peer statistics, websocket transport and concurrency utilities"
requires-python = ">=3.10"
keywords = ["dag", "ledger", "hub", "websocket", "secp256k1", "p2p"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: System :: Distributed Computing",
]
dependencies = [
    "websockets>=12",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[tool.hatch.build.targets.wheel]
packages = ["nrschub"]

[tool.hatch.build.targets.sdist]
include = ["nrschub", "tests", "pyproject.toml", "README.md"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.ruff.lint]
select = ["E", "F", "W", "I", "B", "UP"]

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
warn_redundant_casts = true
