[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "libapp"
version = "0.1.0"
description = "A small library management HTTP API with JWT authentication, role checks and book records."
requires-python = ">=3.10"
keywords = ["library", "books", "rest", "api", "flask", "jwt", "argon2", "sqlalchemy"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Environment :: Web Environment",
    "Framework :: Flask",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Internet :: WWW/HTTP :: HTTP Servers",
]
dependencies = [
    "flask>=2.3",
    "sqlalchemy>=2.0",
    "pyjwt>=2.8",
    "cryptography>=44",
    "python-dotenv>=1.0",
]

[project.optional-dependencies]
test = [
    "pytest>=7.4",
]

[project.scripts]
libapp = "libapp.main:main"

[tool.hatch.build.targets.wheel]
packages = ["libapp"]

[tool.hatch.build.targets.sdist]
include = ["libapp", "tests", "README.md", "pyproject.toml"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
