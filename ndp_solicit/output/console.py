from colorama import Fore, Style, just_fix_windows_console


class ConsoleFormatter:
    """Formatters for console output"""

    enabled = True

    @classmethod
    def configure(cls, enabled: bool = True) -> None:
        """Enable or disable ANSI colors."""
        cls.enabled = enabled
        if enabled:
            just_fix_windows_console()

    @classmethod
    def _paint(cls, color: str, msg: str) -> str:
        if not cls.enabled:
            return msg
        return f"{color}{msg}{Style.RESET_ALL}"

    @classmethod
    def success(cls, msg: str) -> str:
        return cls._paint(Fore.GREEN, f"[+] {msg}")

    @classmethod
    def error(cls, msg: str) -> str:
        return cls._paint(Fore.RED, f"[✗] {msg}")

    @classmethod
    def warning(cls, msg: str) -> str:
        return cls._paint(Fore.YELLOW, f"[!] {msg}")

    @classmethod
    def info(cls, msg: str) -> str:
        return cls._paint(Fore.CYAN, f"[*] {msg}")

    @classmethod
    def separator(cls) -> str:
        return cls._paint(Fore.BLUE, "-" * 50)

    @classmethod
    def packet_sent(cls, target: str, destination: str, source: str, size: int) -> str:
        return cls._paint(
            Fore.GREEN,
            f"-> Sent NS for {target} to {destination} from {source} ({size}B)"
        )
