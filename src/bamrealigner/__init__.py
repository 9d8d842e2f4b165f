import pathlib
import importlib.metadata

import bamrealigner


__version__ = importlib.metadata.version(bamrealigner.__name__)


##############################
# USERDIR (~/.bamrealigner) #
##############################

USERDIR = pathlib.Path.home() / '.bamrealigner'
CONFIGPATH = USERDIR / 'config.yaml'
