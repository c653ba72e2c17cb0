import sys
import secrets
import subprocess
import platform
from pathlib import Path

BASE_DIR = Path(__file__).resolve().parent.parent
VENV_DIR = BASE_DIR / "venv"


def in_virtualenv():
    return sys.prefix != sys.base_prefix


def run_command(command, cwd=None):
    try:
        subprocess.check_call(command, cwd=cwd)
    except subprocess.CalledProcessError:
        print(f"❌ Command failed: {' '.join(str(part) for part in command)}")
        sys.exit(1)


def get_venv_python():
    if in_virtualenv():
        return Path(sys.executable)
    if platform.system() == "Windows":
        return VENV_DIR / "Scripts" / "python.exe"
    return VENV_DIR / "bin" / "python"


def check_python():
    print("📋 Checking Python version...")
    if sys.version_info < (3, 9):
        print("❌ Python 3.9+ is required")
        sys.exit(1)
    print(f"✅ Python {sys.version.split()[0]} detected")


def create_venv():
    if in_virtualenv():
        print("📦 Virtual environment already active, skipping creation")
        return

    if VENV_DIR.exists():
        print("📦 Virtual environment already exists")
        return

    print("📦 Creating virtual environment...")
    run_command([sys.executable, "-m", "venv", str(VENV_DIR)])


def install_dependencies(python_path):
    print("⬆️ Upgrading pip...")
    run_command([str(python_path), "-m", "pip", "install", "--upgrade", "pip"])

    print("📚 Installing the portal...")
    run_command([str(python_path), "-m", "pip", "install", "-e", ".[dev]"], cwd=BASE_DIR)


def create_directories():
    print("📁 Creating directories...")
    for folder in ["logs", "data", "static"]:
        (BASE_DIR / folder).mkdir(exist_ok=True)


def create_env_file():
    env_file = BASE_DIR / ".env"
    if env_file.exists():
        print("⚙️ .env file already exists")
        return

    print("📝 Creating .env file...")
    env_content = f"""# Server
PORT=3000

# Storage (sql | json)
CONFIG_BACKEND=sql
DATABASE_URL=sqlite:///./data/qrew.db
LEGACY_CONFIG_PATH=data/config.json
DEFAULT_ACCESS_PASSWORD=

# Security
SECRET_KEY={secrets.token_urlsafe(32)}
ADMIN_KEY={secrets.token_urlsafe(24)}
ACCESS_TOKEN_EXPIRE_MINUTES=60

# Stripe Checkout
STRIPE_SECRET_KEY=
STRIPE_PUBLISHABLE_KEY=
STRIPE_TIMEOUT_SECONDS=10
SUCCESS_URL=http://localhost:3000/success.html

# Logging
LOG_LEVEL=INFO
LOG_FILE=logs/portal.log
"""
    env_file.write_text(env_content)
    print("✅ .env file created with fresh SECRET_KEY and ADMIN_KEY values.")


def run_migrations(python_path):
    print("🔄 Preparing the portal database...")
    run_command([str(python_path), str(BASE_DIR / "scripts" / "migrate.py")], cwd=BASE_DIR)


def print_next_steps():
    print("\n✅ Setup completed successfully!\n")
    print("📋 Next steps:")
    if platform.system() == "Windows":
        print("1. Activate virtual environment:")
        print("   venv\\Scripts\\activate")
    else:
        print("1. Activate virtual environment:")
        print("   source venv/bin/activate")

    print("2. Add your Stripe keys to .env")
    print("3. Set the access password: PUT /api/admin/settings with the x-admin-key header")
    print("4. Run: python main.py")


def main():
    print("🚀 Setting up Exclusive Drop Portal...\n")

    check_python()
    create_venv()

    python_path = get_venv_python()

    install_dependencies(python_path)
    create_directories()
    create_env_file()
    run_migrations(python_path)
    print_next_steps()


if __name__ == "__main__":
    main()
