"""
Console entry point: ``asset-forge build|watch|status``.
"""
from invoke import Program

from . import __version__
from .tasks import namespace

program = Program(name='asset-forge', binary='asset-forge', namespace=namespace, version=__version__)


def main():
    program.run()


if __name__ == '__main__':
    main()
