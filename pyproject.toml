[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "dlinoss"
version = "0.1.0"
description = "Damped linear oscillatory state-space layers (D-LinOSS) with IMEX discretisation and a tree-based prefix scan, on NumPy"
requires-python = ">=3.10"
dependencies = ["numpy"]
keywords = ["state-space model", "oscillator", "sequence modelling", "parallel scan", "numpy", "mnist"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Science/Research",
    "Intended Audience :: Developers",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Operating System :: OS Independent",
    "Topic :: Scientific/Engineering :: Artificial Intelligence",
]

[project.optional-dependencies]
test = ["pytest"]

[project.scripts]
dlinoss-demo = "dlinoss.demo:main"

[tool.hatch.build.targets.wheel]
packages = ["dlinoss"]

[tool.pytest.ini_options]
addopts = "-ra"
