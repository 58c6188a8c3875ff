from setuptools import setup, find_packages

setup(
    name="lumina-lang",
    version="0.1.0",
    description="Lumina — a declarative UI language that compiles to HTML, JavaScript and CSS",
    packages=find_packages(exclude=["tests", "tests.*"]),
    python_requires=">=3.10",
    install_requires=[
        "PyYAML>=6.0",
    ],
    extras_require={
        "test": [
            "pytest>=7.0",
            "hypothesis>=6.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "lumina=lumina.cli:main",
        ],
    },
)
