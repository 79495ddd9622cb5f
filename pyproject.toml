[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "cronwrap"
version = "0.1.0"
description = "Cron job wrapper that adds structured logging, alerting and execution history to any command"
requires-python = ">=3.10"
dependencies = [
    "pyyaml",
]
keywords = ["cron", "scheduler", "monitoring", "job history", "alerting", "wrapper"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Environment :: Console",
    "Intended Audience :: System Administrators",
    "Operating System :: POSIX",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: System :: Monitoring",
    "Topic :: System :: Logging",
    "Topic :: System :: Systems Administration",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[project.scripts]
cronwrap = "cronwrap.cli:main"

[tool.hatch.build.targets.wheel]
packages = ["cronwrap"]

[tool.pytest.ini_options]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.ruff.lint]
select = ["E", "F", "W", "I", "B", "UP"]
