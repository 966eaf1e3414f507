''' Wrapper module around :mod:`msgspec` to handle the equivalent of
    :func:`json.loads` and :func:`json.dumps` for the wire protocol.
'''

import msgspec


# The msgspec 'encode' operation returns bytes; 'dumps' output goes on the
# wire as is.

encoder = msgspec.json.Encoder()
decoder = msgspec.json.Decoder()

dumps = encoder.encode
loads = decoder.decode

DecodeError = msgspec.DecodeError
EncodeError = msgspec.EncodeError

# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
