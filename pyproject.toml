[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "certidentity"
version = "0.1.0"
description = "Map verified OIDC ID tokens to certificate identities and X.509 extension values"
requires-python = ">=3.10"
dependencies = []
keywords = ["oidc", "x509", "certificate", "identity", "certificate-transparency", "signing"]
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
    "Topic :: Security :: Cryptography",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["certidentity"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
