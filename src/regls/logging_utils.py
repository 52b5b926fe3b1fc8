"""Console reporting helpers for the regls solvers."""

import sys


class Colors:
    """ANSI color codes for terminal output."""

    BLUE: str = "\033[94m"
    GREEN: str = "\033[92m"
    YELLOW: str = "\033[93m"
    RED: str = "\033[91m"
    CYAN: str = "\033[96m"
    RESET: str = "\033[0m"
    BOLD: str = "\033[1m"
    DIM: str = "\033[2m"

    @classmethod
    def is_tty(cls) -> bool:
        """Check if stdout is a TTY (supports colors)."""
        return sys.stdout.isatty()

    @classmethod
    def disable(cls) -> None:
        """Disable all colors."""
        cls.BLUE = ""
        cls.GREEN = ""
        cls.YELLOW = ""
        cls.RED = ""
        cls.CYAN = ""
        cls.RESET = ""
        cls.BOLD = ""
        cls.DIM = ""


# Disable colors if not in a TTY
if not Colors.is_tty():
    Colors.disable()


def info(message: str) -> None:
    """Print an informational message.

    Args:
        message: Message to print.

    Example:
        >>> info("Estimating Lipschitz constant...")
        [INFO] Estimating Lipschitz constant...
    """
    print(f"{Colors.BLUE}[INFO]{Colors.RESET} {message}")


def success(message: str) -> None:
    """Print a success message with checkmark.

    Args:
        message: Message to print.

    Example:
        >>> success("Converged!")
        ✓ Converged!
    """
    print(f"{Colors.GREEN}✓{Colors.RESET} {message}")


def warning(message: str) -> None:
    """Print a warning message.

    Args:
        message: Warning message to print.

    Example:
        >>> warning("Maximum number of iterations reached.")
        [WARNING] Maximum number of iterations reached.
    """
    print(f"{Colors.YELLOW}[WARNING]{Colors.RESET} {message}")


def hint(message: str) -> None:
    """Print a hint message for user guidance.

    Args:
        message: Hint message to print.

    Example:
        >>> hint("Try increasing max_iter.")
        [HINT] Try increasing max_iter.
    """
    print(f"{Colors.CYAN}[HINT]{Colors.RESET} {message}")


def debug(message: str) -> None:
    """Print a debug message (dimmed).

    Args:
        message: Debug message to print.

    Example:
        >>> debug("tau line search exhausted")
        [DEBUG] tau line search exhausted
    """
    print(f"{Colors.DIM}[DEBUG] {message}{Colors.RESET}")


def banner(message: str, char: str = "=", width: int = 60) -> None:
    """Print a banner message.

    Args:
        message: Message to display in banner.
        char: Character to use for banner lines. Defaults to "=".
        width: Width of the banner. Defaults to 60.

    Example:
        >>> banner("ZeroFPR")
        ============================================================
        ZeroFPR
        ============================================================
    """
    print(char * width)
    print(message)
    print(char * width)


STATUS_HEADER = f"{'it':>6} | {'gamma':>10} | {'normfpr':>10} | {'tau':>10} | {'cost':>11} | {'time':>8}"


def format_status(
    it: int, gamma: float, normfpr: float, tau: float, cost: float, elapsed: float
) -> str:
    """Format one solver status line, aligned with ``STATUS_HEADER``.

    Args:
        it: Iteration index.
        gamma: Current forward-backward step size.
        normfpr: Norm of the fixed-point residual.
        tau: Last accepted quasi-Newton step length.
        cost: Current cost estimate f(xbar) + g(xbar).
        elapsed: Seconds since the solve started.

    Returns:
        The formatted line.

    Example:
        >>> format_status(100, 0.95, 1.2e-3, 1.0, 4.5, 0.12)
        '   100 | 9.5000e-01 | 1.2000e-03 | 1.0000e+00 |  4.5000e+00 |   0.120s'
    """
    return (
        f"{it:>6d} | {gamma:.4e} | {normfpr:.4e} | {tau:.4e} | {cost: .4e} | {elapsed:>7.3f}s"
    )
