"""
SoundSense - toca sons a partir das linhas do gamelog.

Uso:
    SOUNDPACK_PATH=soundpacks/default GAMELOG_PATH=gamelog.txt uvicorn soundsense.main:app
"""

__version__ = "0.3.0"
