#!/usr/bin/env python3
"""
Python task runner for Delivery Metrics
Alternative to Makefile using Python's invoke library pattern
"""

import sys
import subprocess
from pathlib import Path

# Colors for output
GREEN = '\033[0;32m'
YELLOW = '\033[1;33m'
RED = '\033[0;31m'
NC = '\033[0m'  # No Color

# Project paths
VENV = Path('.venv')
VENV_BIN = VENV / 'bin'
PYTHON = VENV_BIN / 'python'
PIP = VENV_BIN / 'pip'
PYTEST = VENV_BIN / 'pytest'
BLACK = VENV_BIN / 'black'
RUFF = VENV_BIN / 'ruff'


def run_command(cmd, check=True, capture_output=False):
    """Run a command and return the result."""
    print(f"{GREEN}Running: {cmd}{NC}")
    result = subprocess.run(
        cmd,
        shell=True,
        check=check,
        capture_output=capture_output
    )
    return result


def check_venv():
    """Check if virtual environment exists."""
    if not VENV.exists():
        print(f"{YELLOW}Virtual environment not found. Creating...{NC}")
        subprocess.run([sys.executable, '-m', 'venv', '.venv'], check=True)
        print(f"{GREEN}Virtual environment created{NC}")


def task_help():
    """Show help information."""
    print(f"""{GREEN}Available tasks:{NC}

{YELLOW}Development:{NC}
  python task.py dev                  # Full development setup
  python task.py install              # Install dependencies
  python task.py install-dev         # Install dev dependencies

{YELLOW}Testing:{NC}
  python task.py test                # Run tests
  python task.py test-coverage       # Run tests with coverage

{YELLOW}Code Quality:{NC}
  python task.py lint                # Run linters
  python task.py format              # Format code
  python task.py format-check        # Check code formatting
  python task.py check               # Run all checks

{YELLOW}Application:{NC}
  python task.py run                 # Run the CLI

{YELLOW}Cleanup:{NC}
  python task.py clean               # Remove build artifacts
""")


def task_dev():
    """Full development setup."""
    print(f"{GREEN}Setting up development environment...{NC}")
    check_venv()
    run_command(f"{PIP} install --upgrade pip")
    run_command(f"{PIP} install -r requirements.txt")
    run_command(f"{PIP} install -r requirements-dev.txt")
    print(f"\n{GREEN}Development environment ready!{NC}")


def task_install():
    """Install production dependencies."""
    check_venv()
    print(f"{GREEN}Installing production dependencies...{NC}")
    run_command(f"{PIP} install --upgrade pip")
    run_command(f"{PIP} install -r requirements.txt")


def task_install_dev():
    """Install development dependencies."""
    task_install()
    print(f"{GREEN}Installing development dependencies...{NC}")
    run_command(f"{PIP} install -r requirements-dev.txt")


def task_clean():
    """Remove build artifacts."""
    print(f"{YELLOW}Cleaning build artifacts...{NC}")
    dirs_to_remove = [
        '__pycache__',
        '.pytest_cache',
        '.mypy_cache',
        '*.egg-info',
        'build',
        'dist',
    ]
    for pattern in dirs_to_remove:
        for path in Path('.').rglob(pattern):
            if path.is_file():
                path.unlink()
            elif path.is_dir():
                import shutil
                shutil.rmtree(path)
    print(f"{GREEN}Clean complete{NC}")


def task_test():
    """Run tests."""
    print(f"{GREEN}Running tests...{NC}")
    run_command(f"{PYTEST} -v")


def task_test_coverage():
    """Run tests with coverage."""
    print(f"{GREEN}Running tests with coverage...{NC}")
    run_command(f"{PYTEST} --cov=delivery_metrics --cov-report=html --cov-report=term")


def task_lint():
    """Run linters."""
    print(f"{GREEN}Running ruff...{NC}")
    run_command(f"{RUFF} check .")


def task_format():
    """Format code."""
    print(f"{GREEN}Formatting code...{NC}")
    run_command(f"{BLACK} .")


def task_format_check():
    """Check code formatting."""
    print(f"{GREEN}Checking code formatting...{NC}")
    run_command(f"{BLACK} . --check")


def task_check():
    """Run all checks."""
    task_format_check()
    task_lint()
    print(f"{GREEN}All checks passed!{NC}")


def task_run():
    """Run the CLI."""
    if not Path('config.yml').exists():
        print(f"{RED}Error: config.yml not found{NC}")
        sys.exit(1)
    print(f"{GREEN}Running delivery-metrics...{NC}")
    run_command(f"{PYTHON} -m delivery_metrics.cli -vv config.yml")


def main():
    """Main task dispatcher."""
    if len(sys.argv) < 2:
        task_help()
        return
    
    task_name = sys.argv[1].replace('-', '_')
    
    # Map task names to functions
    tasks = {
        'help': task_help,
        'dev': task_dev,
        'install': task_install,
        'install_dev': task_install_dev,
        'clean': task_clean,
        'test': task_test,
        'test_coverage': task_test_coverage,
        'lint': task_lint,
        'format': task_format,
        'format_check': task_format_check,
        'check': task_check,
        'run': task_run,
    }
    
    if task_name in tasks:
        try:
            tasks[task_name]()
        except subprocess.CalledProcessError as e:
            print(f"{RED}Task failed with exit code {e.returncode}{NC}")
            sys.exit(1)
    else:
        print(f"{RED}Unknown task: {sys.argv[1]}{NC}")
        task_help()
        sys.exit(1)


if __name__ == '__main__':
    main()
