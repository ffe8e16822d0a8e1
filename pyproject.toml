[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "blehost"
version = "0.1.0"
description = "Bluetooth Low Energy host helpers: advertising data, UUIDs, GATT service and server definitions, and sizing configuration."
requires-python = ">=3.10"
dependencies = []
keywords = [
    "bluetooth",
    "ble",
    "gatt",
    "advertising",
    "uuid",
    "bluetooth-low-energy",
]
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
    "Topic :: Communications",
    "Topic :: Software Development :: Libraries :: Python Modules",
]

[project.optional-dependencies]
test = ["pytest"]

[project.scripts]
blehost-config = "blehost.config:main"

[tool.hatch.build.targets.wheel]
packages = ["blehost"]

[tool.hatch.build.targets.sdist]
include = ["blehost", "tests"]

[tool.pytest.ini_options]
addopts = "-ra"
testpaths = ["tests"]
