[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "huntrweb"
version = "0.1.0"
description = "Web dashboard and JSON API for a job-hunting pipeline: scored jobs, sources, schedules, errors and CV collections."
requires-python = ">=3.10"
keywords = ["jobs", "dashboard", "flask", "scraper", "scheduler"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Framework :: Flask",
    "Intended Audience :: End Users/Desktop",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Internet :: WWW/HTTP :: Dynamic Content",
]
dependencies = [
    "flask",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[project.scripts]
huntrweb = "huntrweb.server:main"

[tool.hatch.build.targets.wheel]
packages = ["huntrweb"]

[tool.pytest.ini_options]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"
