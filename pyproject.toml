[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "needle"
version = "0.1.0"
description = "Dependency injection container with lifecycle hooks, interface binding, decorators and graph inspection"
requires-python = ">=3.10"
keywords = [
    "dependency-injection",
    "di",
    "ioc",
    "container",
    "lifecycle",
    "benchmark",
]
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
dependencies = [
    "tabulate",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[project.scripts]
needle-bench = "needle.benchcli:main"

[tool.hatch.build.targets.wheel]
packages = ["needle"]

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
