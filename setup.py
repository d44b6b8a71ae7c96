from setuptools import setup, find_packages

with open('README.md', 'r') as readme:
    long_description = readme.read()

setup(
    name='cubic-bspline',
    version='1.0.0',
    description='Uniform cubic B-spline curves kept in sync between knot points and control points.',
    long_description=long_description,
    long_description_content_type='text/markdown',
    packages=find_packages(exclude=['tests', 'tests.*']),
    install_requires=['numpy', 'numba', 'scipy', 'matplotlib'],
    extras_require={'test': ['pytest']},
    classifiers=['Programming Language :: Python :: 3',
                 'Operating System :: OS Independent'],

)
