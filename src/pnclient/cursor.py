""" Per-context tracking of subscribe timetokens. The server is the sole
    authority on ordering: a successful response replaces the timetoken for
    every channel in the request, with no merging between channel sets.
"""

import threading


origin = '0'


class Cursor:
    """ Mapping of channel name to the last timetoken received for that
        channel. A channel that is absent subscribes 'from now'.
    """

    def __init__(self):
        self._timetokens = dict()
        self._lock = threading.Lock()


    def __contains__(self, channel):
        return channel in self._timetokens


    def __getitem__(self, channel):
        return self._timetokens[channel]


    def __len__(self):
        return len(self._timetokens)


    def advance(self, channels, timetoken):
        """ Record *timetoken* as the position of every channel in
            *channels*. This is called once per successful subscribe
            response, never for a failed or retried attempt.
        """

        timetoken = str(timetoken)

        self._lock.acquire()
        for channel in channels:
            self._timetokens[channel] = timetoken
        self._lock.release()


    def clear(self, channels=None):
        """ Forget the position of the listed *channels*, or of every channel
            if none are listed; the next subscribe starts from now.
        """

        self._lock.acquire()

        if channels is None:
            self._timetokens.clear()
        else:
            for channel in channels:
                self._timetokens.pop(channel, None)

        self._lock.release()


    def positions(self, channels):
        """ Return a list with the timetoken of each channel in *channels*,
            in the same order, using '0' for any channel with no position.
        """

        self._lock.acquire()
        positions = [self._timetokens.get(channel, origin) for channel in channels]
        self._lock.release()

        return positions


    def position(self, channels):
        """ Return the single timetoken placed in the path of a subscribe
            request for *channels*: the oldest position known for any
            channel in the set, so that no channel skips ahead of its own
            cursor. If none of the channels has a position the result is
            '0'. When the channels disagree a subscribe request also
            carries every position individually.
        """

        known = [timetoken for timetoken in self.positions(channels) if timetoken != origin]

        if len(known) == 0:
            return origin

        return min(known, key=int)


# end of class Cursor


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
