import pnclient
import pnclient.listen
import sys


class Room:

    def __init__(self, channel, cipher_key=None):

        self.channel = channel

        self.listener = pnclient.Context('demo', 'demo')
        self.speaker = pnclient.Context('demo', 'demo')

        if cipher_key is not None:
            self.listener.set_cipher_key(cipher_key)
            self.speaker.set_cipher_key(cipher_key)

        pnclient.listen.start(self.listener, channel, self.heard)


    def heard(self, channel, message):

        if isinstance(message, pnclient.DecryptionFailure):
            print('(unreadable message on %s)' % (channel))
            return

        print('%s: %s' % (message.get('from'), message.get('text')))


    def say(self, name, text):

        result = self.speaker.publish(self.channel, {'from': name, 'text': text})

        if result.code != pnclient.Code.OK:
            print('could not send: ' + result.text, file=sys.stderr)


    def leave(self):
        pnclient.listen.stop(self.heard)
        self.speaker.close()


def main():

    room = Room('hello_world')
    name = room.speaker.current_uuid()[:8]

    try:
        for line in sys.stdin:
            room.say(name, line.rstrip())
    finally:
        room.leave()


if __name__ == '__main__':
    main()


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
