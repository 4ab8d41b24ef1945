"""
Squatter Spotter パッケージ。

レジストリのアカウントごとに公開パッケージを列挙し、ソースコード行数を計測して
CSV に記録するバッチ処理をまとめる。
"""

__version__ = "0.1.0"

__all__ = [
    "config",
    "models",
    "client",
    "listing",
    "workspace",
    "measure",
    "accounts",
    "sink",
    "driver",
    "reporting",
    "cli",
]
