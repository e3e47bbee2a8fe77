[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "fluidkit"
version = "0.1.0"
description = "WSGI middleware building blocks, SQL where-clause helpers and transaction helpers for small API services"
requires-python = ">=3.10"
dependencies = []
keywords = ["wsgi", "middleware", "cors", "sql", "transactions", "validation", "api"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Internet :: WWW/HTTP :: WSGI :: Middleware",
    "Topic :: Database",
    "Typing :: Typed",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["fluidkit"]

[tool.pytest.ini_options]
addopts = "-ra"
