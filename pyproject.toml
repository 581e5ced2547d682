[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "tinyrisc"
version = "0.15.0"
description = "Assembler, encoder and step-by-step simulator for a small RISC-style teaching instruction set"
requires-python = ">=3.10"
dependencies = []
keywords = ["assembler", "simulator", "risc", "instruction set", "education", "curses"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Environment :: Console :: Curses",
    "Intended Audience :: Education",
    "Operating System :: POSIX",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Software Development :: Assemblers",
    "Topic :: Education",
]

[project.optional-dependencies]
test = ["pytest"]

[project.scripts]
tinyrisc = "tinyrisc.tui:main"

[tool.hatch.build.targets.wheel]
packages = ["tinyrisc"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
