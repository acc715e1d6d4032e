[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "imgdedup"
version = "0.1.0"
description = "Building blocks for finding duplicate images: storage listing, hash persistence and result collection"
requires-python = ">=3.10"
dependencies = []
keywords = ["images", "duplicates", "perceptual-hash", "deduplication", "asyncio"]
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
    "Framework :: AsyncIO",
    "Topic :: Multimedia :: Graphics",
]

[project.optional-dependencies]
test = [
    "pytest",
    "pytest-asyncio",
]

[tool.hatch.build.targets.wheel]
packages = ["imgdedup"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
