#!/usr/bin/env python3

from setuptools import setup
import os

directory = os.path.dirname(os.path.realpath(__file__))


if __name__ == "__main__":
    setup(
        name="meshfmt",
        packages=["meshfmt", "meshfmt.loaders", "meshfmt.mesh"],
        python_requires='>3.10.0',
        version="0.1.0",
        license="MIT",
        description="PLY and STL mesh decoders",
        author="mirmik",
        author_email="mirmikns@yandex.ru",
        long_description=open(os.path.join(
            directory, "README.md"), "r", encoding="utf8").read(),
        long_description_content_type="text/markdown",
        keywords=["mesh", "ply", "stl"],
        classifiers=[],
        include_package_data=True,
        install_requires=[
            "numpy",
        ],
        extras_require={
            "test": ["pytest"],
        },
        entry_points={
            "console_scripts": ["meshfmt=meshfmt.__main__:main"],
        },
        zip_safe=False,
    )
