[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "schemaguard"
version = "0.1.0"
description = "Shadow Postgres databases in Docker, query-plan regression analysis and migration reports"
requires-python = ">=3.10"
keywords = ["postgres", "postgresql", "migration", "explain", "query-plan", "shadow-database", "ci"]
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
    "Topic :: Database",
    "Topic :: Software Development :: Quality Assurance",
]
dependencies = [
    "pyyaml",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[tool.hatch.build.targets.wheel]
packages = ["schemaguard"]

[tool.pytest.ini_options]
addopts = "-ra"
