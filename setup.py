from setuptools import setup, find_packages

setup(
    name="compactor",
    version="0.1.0",
    description="JavaScript and CSS minifier: lexer, rewrite rules and a compact emitter",
    package_dir={"": "src"},
    packages=find_packages("src"),
    install_requires=[],
    extras_require={"test": ["pytest>=7.0"]},
    entry_points={
        "console_scripts": [
            "compactor=compactor.cli:main",
        ]
    },
    python_requires=">=3.10",
)
