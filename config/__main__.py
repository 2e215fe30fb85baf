"""Command line interface for checking configuration loading"""
from . import settings_conf

SECRET_SETTINGS = {'jwt_secret', 'internal_service_token'}

def main():
    """Display loaded configuration"""
    print("\nSettings Configuration:")
    print("-" * 50)
    for key, value in settings_conf.items():
        if key in SECRET_SETTINGS and value:
            value = '********'
        print(f"{key}: {value}")

if __name__ == "__main__":
    main()
