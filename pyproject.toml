[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "oasysdb"
version = "0.8.0"
description = "A vector database with a self-balancing IVF index, metadata filters, JSON snapshots and a JSON-over-HTTP server"
requires-python = ">=3.10"
keywords = [
    "vector database",
    "nearest neighbor",
    "ann",
    "ivf",
    "kmeans",
    "similarity search",
    "embeddings",
]
classifiers = [
    "Development Status :: 4 - Beta",
    "Environment :: Console",
    "Intended Audience :: Developers",
    "Intended Audience :: Science/Research",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Database :: Database Engines/Servers",
    "Topic :: Scientific/Engineering :: Information Analysis",
]
dependencies = [
    "numpy",
    "python-dotenv",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[project.scripts]
oasysdb = "oasysdb.cli:main"

[tool.hatch.build.targets.wheel]
packages = ["oasysdb"]

[tool.pytest.ini_options]
addopts = "-ra"
testpaths = ["tests"]

[tool.ruff]
line-length = 88
target-version = "py310"

[tool.ruff.lint]
select = ["E", "F", "I", "B", "UP"]

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
