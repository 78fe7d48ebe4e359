#! /usr/bin/env python
# Copyright 2014-2023 Peter Williams <peter@newton.cx> and collaborators.
# Licensed under the MIT License.

# I don't use the ez_setup module because it causes us to automatically build
# and install a new setuptools module, which I'm not interested in doing.

from setuptools import setup


def get_long_desc():
    in_preamble = True
    lines = []

    with open("README.md", "rt", encoding="utf8") as f:
        for line in f:
            if in_preamble:
                if line.startswith("<!--pypi-begin-->"):
                    in_preamble = False
            else:
                if line.startswith("<!--pypi-end-->"):
                    break
                else:
                    lines.append(line)

    return "".join(lines)


setup(
    name="nlsolve",
    version="0.3.0",  # also edit nlsolve/__init__.py
    zip_safe=False,
    packages=[
        "nlsolve",
        "nlsolve.cli",
    ],
    install_requires=[
        "numpy >= 1.6",
    ],
    extras_require={
        "test": [
            "pytest",
        ],
    },
    entry_points={
        "console_scripts": [
            "nltool = nlsolve.cli.nltool:commandline",
        ],
    },
    author="Peter Williams",
    author_email="peter@newton.cx",
    description="MINPACK-style nonlinear equation and least-squares solvers in pure Python",
    license="MIT",
    keywords="minpack levenberg-marquardt powell hybrid nonlinear least-squares",
    long_description=get_long_desc(),
    long_description_content_type="text/markdown",
    classifiers=[
        "Development Status :: 4 - Beta",
        "Environment :: Console",
        "Intended Audience :: Science/Research",
        "License :: OSI Approved :: MIT License",
        "Operating System :: OS Independent",
        "Programming Language :: Python :: 3",
        "Topic :: Scientific/Engineering :: Mathematics",
    ],
)
