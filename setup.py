#! /usr/bin/env python
"""Relevance vector regression over caller-supplied basis functions."""

import codecs
import os

from setuptools import find_packages, setup

# get __version__ from _version.py
ver_file = os.path.join('basis_rvm', '_version.py')
with open(ver_file) as f:
    exec(f.read())

DISTNAME = 'basis_rvm'
DESCRIPTION = ('Sparse Bayesian regression with the Relevance Vector Machine '
               'over user supplied basis functions.')
with codecs.open('README.rst', encoding='utf-8-sig') as f:
    LONG_DESCRIPTION = f.read()
LICENSE = 'new BSD'
VERSION = __version__
INSTALL_REQUIRES = ['numpy', 'scipy', 'scikit-learn']
CLASSIFIERS = ['Intended Audience :: Science/Research',
               'Intended Audience :: Developers',
               'License :: OSI Approved',
               'Programming Language :: Python',
               'Topic :: Software Development',
               'Topic :: Scientific/Engineering',
               'Operating System :: Microsoft :: Windows',
               'Operating System :: POSIX',
               'Operating System :: Unix',
               'Operating System :: MacOS',
               'Programming Language :: Python :: 3']
EXTRAS_REQUIRE = {
    'tests': [
        'pytest',
        'pytest-cov'],
}

setup(name=DISTNAME,
      description=DESCRIPTION,
      license=LICENSE,
      version=VERSION,
      long_description=LONG_DESCRIPTION,
      zip_safe=False,  # the package can run out of an .egg file
      classifiers=CLASSIFIERS,
      packages=find_packages(exclude=['examples']),
      install_requires=INSTALL_REQUIRES,
      extras_require=EXTRAS_REQUIRE)
