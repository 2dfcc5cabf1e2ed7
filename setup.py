#!/usr/bin/env python
""" MongoDB-style document storage on top of MySQL & PostgreSQL JSON columns, with SqlAlchemy """

from setuptools import setup, find_packages

setup(
    name='mongojson',
    version='1.0.0',
    author='Mark Vartanyan',
    author_email='kolypto@gmail.com',

    license='BSD',
    description=__doc__,
    long_description=open('README.md').read(),
    long_description_content_type='text/markdown',
    keywords=['sqlalchemy', 'mongodb', 'json', 'mysql', 'postgresql'],

    packages=find_packages(exclude=('tests',)),
    scripts=[],
    entry_points={},

    python_requires='>= 3.7',
    install_requires=[
        'sqlalchemy >= 1.4.0',
    ],
    extras_require={
        'mysql': ['pymysql'],
        'postgresql': ['psycopg2-binary'],
        'test': ['pytest', 'pytest-cov', 'nox'],
    },
    include_package_data=True,

    platforms='any',
    classifiers=[
        # https://pypi.python.org/pypi?%3Aaction=list_classifiers
        'Development Status :: 4 - Beta',
        'Intended Audience :: Developers',
        'Natural Language :: English',
        'Operating System :: OS Independent',
        'Programming Language :: Python :: 3',
        'Topic :: Database',
        'Topic :: Software Development :: Libraries :: Python Modules',
    ],
)
