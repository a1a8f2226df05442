from setuptools import setup

setup(
    name="cloneprune",
    version="0.0.1",
    install_requires=['tree_sitter==0.23.1', 'tree-sitter-c==0.23.1'],
    extras_require={"test": ["pytest"]},
    packages=['cloneprune', 'cloneprune.lang'],
)
