"""
Utilities for silencing native audio library noise (ALSA/JACK probing).
"""
import os
import functools


# PortAudio probes JACK on Linux; never let it spawn a server
os.environ.setdefault("JACK_NO_START_SERVER", "1")

# Suppress Google Cloud gRPC warnings
os.environ.setdefault("GRPC_VERBOSITY", "ERROR")
os.environ.setdefault("GLOG_minloglevel", "2")


def with_suppressed_audio_warnings(func):
    """
    Decorator that silences native audio warnings during a device call.

    PortAudio writes its ALSA probing errors straight to file descriptor 2,
    so stderr is redirected at the descriptor level, not just sys.stderr.
    """
    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        try:
            original_stderr_fd = os.dup(2)
            null_fd = os.open(os.devnull, os.O_WRONLY)
            os.dup2(null_fd, 2)
            os.close(null_fd)
        except OSError:
            original_stderr_fd = None

        try:
            return func(*args, **kwargs)
        finally:
            if original_stderr_fd is not None:
                os.dup2(original_stderr_fd, 2)
                os.close(original_stderr_fd)

    return wrapper
