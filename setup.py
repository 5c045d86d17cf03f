# SPDX-License-Identifier: BSD-3-Clause
# Part of the SiloDEM project

from setuptools import setup, find_packages

_test_deps = [
    "pytest",
]

setup(
    name="SiloDEM",
    version="0.1",
    license="BSD-3",
    description="Soft-sphere DEM simulation of granular flow through a silo outlet",
    long_description=open("README.md").read(),
    long_description_content_type="text/markdown",
    packages=find_packages(include=["silodem", "silodem.*"]),
    python_requires=">=3.10",
    install_requires=[
        "jax",
        "vtk",
        "numpy",
        "tqdm",
    ],
    extras_require={
        # pip install SiloDEM[test]
        "test": _test_deps,
        # Optional JAX backends
        "cuda": ["jax[cuda]"],
        "cuda12": ["jax[cuda12]"],
        "cuda13": ["jax[cuda13]"],
        "tpu": ["jax[tpu]"],
    },
    entry_points={
        "console_scripts": [
            "silodem-run=silodem.__main__:main",
        ],
    },
)
