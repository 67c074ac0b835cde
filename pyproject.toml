[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "boilquery"
version = "0.1.0"
description = "Composable SQL query building, result binding onto dataclasses and eager loading for DB-API code"
requires-python = ">=3.10"
dependencies = []
keywords = ["sql", "query builder", "database", "dataclasses", "eager loading", "dbapi"]
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
    "Topic :: Database :: Front-Ends",
    "Topic :: Software Development :: Libraries :: Python Modules",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["boilquery"]

[tool.hatch.build.targets.sdist]
include = ["boilquery", "tests"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
