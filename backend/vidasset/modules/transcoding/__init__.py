"""Transcoding module for probing and per-resolution encoding.

Runs FFmpeg/FFprobe as subprocesses; resolutions are target heights with
the width chosen by the engine to keep the aspect ratio.
"""
