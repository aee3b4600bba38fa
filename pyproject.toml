[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "mpfhost"
version = "1.0.0"
description = "Host runtime for a modular plugin framework: service registry, event bus, menus, themes, navigation, settings and plugin lifecycle."
requires-python = ">=3.10"
dependencies = []
keywords = ["plugins", "event-bus", "service-registry", "framework", "host"]
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
    "Topic :: Software Development :: Libraries :: Application Frameworks",
]

[project.optional-dependencies]
test = ["pytest"]

[project.scripts]
mpf-host = "mpfhost.application:main"

[tool.hatch.build.targets.wheel]
packages = ["mpfhost"]

[tool.pytest.ini_options]
addopts = "-ra"
