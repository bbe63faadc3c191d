import os.path
from setuptools import find_packages, setup

# the directory containing this file
ROOT = os.path.dirname(__file__)

# the text of the README file
with open(os.path.join(ROOT, "README.md"), "r", encoding="utf-8") as f:
    README = f.read()

setup(
    name="adf-to-confluence",
    version="0.1.0",
    description="Publish Atlassian Document Format content to Confluence wiki",
    long_description=README,
    long_description_content_type="text/markdown",
    author="Levente Hunyadi",
    author_email="hunyadi@gmail.com",
    license="MIT",
    classifiers=[
        "License :: OSI Approved :: MIT License",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
        "Programming Language :: Python :: 3.13",
    ],
    packages=find_packages(exclude=("tests",)),
    include_package_data=True,
    python_requires=">=3.10",
    install_requires=[
        "cattrs >= 25.1",
        "lxml >= 5.4",
        "orjson >= 3.10",
        "requests >= 2.32",
        "typing_extensions >= 4.12; python_version < '3.12'",
    ],
    entry_points={
        "console_scripts": [
            "adf2conf = adf2conf.__main__:main",
        ],
    },
)
