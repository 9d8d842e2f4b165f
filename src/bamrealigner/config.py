import os

import yaml

import bamrealigner


DEFAULT_PARAMS = {
    'verbosity': 1,  # 0: warnings only, 1: progress, 2: tracing
    'window_radius': 100,  # added to both sides of each region before loading
}


def parse_params(**kwargs):
    if any(x not in DEFAULT_PARAMS.keys() for x in kwargs.keys()):
        raise Exception(f'Allowed keys are: {list(DEFAULT_PARAMS.keys())}')

    params = dict(DEFAULT_PARAMS)
    params.update((k, v) for k, v in kwargs.items() if v is not None)

    for key in ('verbosity', 'window_radius'):
        val = params[key]
        if isinstance(val, bool) or not isinstance(val, int):
            raise ValueError(f'"{key}" must be an integer: {val!r}')
        if val < 0:
            raise ValueError(f'"{key}" must not be negative: {val}')

    return params


def load_config(path=None, **overrides):
    """Args:
        path: YAML file with a mapping of parameters. If None, 
            ~/.bamrealigner/config.yaml is read when it exists.
        overrides: parameters taking precedence over the file. 
            None values are ignored.
    Returns:
        dict of parameters, defaults filled
    """
    if path is None:
        if os.path.exists(bamrealigner.CONFIGPATH):
            path = bamrealigner.CONFIGPATH

    if path is None:
        file_params = dict()
    else:
        with open(path) as f:
            file_params = yaml.safe_load(f)
        if file_params is None:
            file_params = dict()
        if not isinstance(file_params, dict):
            raise Exception(f'Config file "{path}" must contain a mapping.')

    file_params.update((k, v) for k, v in overrides.items() if v is not None)

    return parse_params(**file_params)
