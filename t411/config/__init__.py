from t411.config.settings import Settings, settings

__all__ = ['Settings', 'settings']
