[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "halodb"
version = "0.1.0"
description = "A small partitioned key-value store with a write-ahead log, memtable, bloom filter and B+ tree"
requires-python = ">=3.10"
keywords = ["key-value", "database", "b-plus-tree", "write-ahead-log", "bloom-filter", "memtable"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Environment :: Console",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Database :: Database Engines/Servers",
]
dependencies = []

[project.optional-dependencies]
test = ["pytest"]

[project.scripts]
halo-db = "halodb.cli:main"

[tool.hatch.build.targets.wheel]
packages = ["halodb"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
