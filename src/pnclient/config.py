""" Default settings for :mod:`pnclient`. Built-in defaults can be
    overridden by a ``config.json`` file in the :func:`directory`, and
    individual values by environment variables; the environment wins.
"""

import os
import threading

from . import json


defaults = dict()
defaults['origin'] = 'http://pubsub.pubnub.com'
defaults['timeout'] = 10.0
defaults['subscribe_timeout'] = 310.0
defaults['retry_delay'] = 1.0
defaults['retry_budget'] = None
defaults['user_agent'] = 'pnclient/0.3'

environment = dict()
environment['origin'] = 'PNCLIENT_ORIGIN'
environment['timeout'] = 'PNCLIENT_TIMEOUT'
environment['subscribe_timeout'] = 'PNCLIENT_SUBSCRIBE_TIMEOUT'
environment['retry_delay'] = 'PNCLIENT_RETRY_DELAY'

_loaded = None
_loaded_lock = threading.Lock()


def directory(default=None):
    """ Return the directory where an optional ``config.json`` is loaded
        from. This defaults to ``$HOME/.pnclient``, but can be overridden
        by calling this method with a valid path, or by setting the
        ``PNCLIENT_HOME`` environment variable. Changes to the environment
        variable are ignored unless made prior to the first invocation of
        this method, or followed by a call to :func:`reload`.
    """

    if default is not None:
        default = str(default)
        default = os.path.expandvars(default)

        if os.path.isabs(default):
            pass
        else:
            raise ValueError('the default directory must be an absolute path')

        os.environ['PNCLIENT_HOME'] = default
        directory.found = default

    found = directory.found

    if found is not None:
        return found

    try:
        found = os.environ['PNCLIENT_HOME']
    except KeyError:
        pass
    else:
        directory.found = found
        return found

    try:
        home = os.environ['HOME']
    except KeyError:
        return None

    found = os.path.join(home, '.pnclient')

    directory.found = found
    return found

directory.found = None



def get(name):
    """ Return the effective value of the setting *name*. A KeyError is
        raised for unknown settings.
    """

    global _loaded

    loaded = _loaded

    if loaded is None:
        _loaded_lock.acquire()
        try:
            loaded = _loaded
            if loaded is None:
                loaded = load()
                _loaded = loaded
        finally:
            _loaded_lock.release()

    return loaded[name]



def load():
    """ Assemble the full set of settings from the built-in defaults, the
        configuration file, and the environment, in that order.
    """

    settings = dict(defaults)

    base_dir = directory()

    if base_dir is not None:
        filename = os.path.join(base_dir, 'config.json')

        try:
            raw_json = open(filename, 'rb').read()
        except FileNotFoundError:
            pass
        else:
            from_file = json.loads(raw_json)

            if isinstance(from_file, dict):
                pass
            else:
                raise ValueError('expected a JSON object in ' + filename)

            for key,value in from_file.items():
                if key in defaults:
                    settings[key] = value
                else:
                    raise ValueError("unknown setting '%s' in %s" % (key, filename))

    for key,variable in environment.items():
        try:
            value = os.environ[variable]
        except KeyError:
            continue

        if key == 'origin':
            settings[key] = value
        else:
            settings[key] = float(value)

    return settings



def reload():
    """ Discard any cached settings; the next :func:`get` will reload them.
    """

    global _loaded

    _loaded_lock.acquire()
    _loaded = None
    directory.found = None
    _loaded_lock.release()


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
