from setuptools import setup, find_packages
# To use a consistent encoding
from codecs import open
from os import path


here = path.abspath(path.dirname(__file__))

# Get the long description from the README file
with open(path.join(here, 'README.rst'), encoding='utf-8') as f:
    long_description = f.read()


setup(
    name='itemsetminer',
    version='0.1.0',
    description='Interesting itemset mining with structural expectation-maximization',
    long_description=long_description,
    license='GNU',
    packages=find_packages(exclude=['contrib', 'docs', 'tests']),
    install_requires=['pandas', 'numpy', 'scipy>=1.9'],
    extras_require={
        'spark': ['pyspark'],
        'test': ['pytest'],
    },
    python_requires='>=3.8',
)
