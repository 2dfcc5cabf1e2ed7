""" MongoDB-style document ids

    24 hexadecimal characters: a 4-byte timestamp, a 3-byte machine id, a 2-byte process id, and a 3-byte counter.
    Ids generated later sort after the ids generated earlier (within one second, in one process).
"""

import os
import time
import socket
import hashlib
import threading
import random


class ObjectIdGenerator:
    """ Generates unique 24-character hex ids

        An instance is callable: `generate = ObjectIdGenerator(); generate()`
    """

    def __init__(self):
        self._machine = hashlib.md5(socket.gethostname().encode()).digest()[:3]
        self._counter = random.randint(0, 0xFFFFFF)
        self._lock = threading.Lock()

    def __call__(self) -> str:
        with self._lock:
            self._counter = (self._counter + 1) % 0x1000000
            counter = self._counter

        return (
            int(time.time()).to_bytes(4, 'big') +
            self._machine +
            (os.getpid() % 0x10000).to_bytes(2, 'big') +
            counter.to_bytes(3, 'big')
        ).hex()


#: The default id generator
generate_id = ObjectIdGenerator()
