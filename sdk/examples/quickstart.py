"""GlobeTrotter quickstart example

This script walks through:
1. Signing up (or logging in if the account exists)
2. Reading and updating the profile
3. Listing sessions from two devices
4. Revoking the other device
5. Logging out
"""
import os

from globetrotter import GlobeTrotterClient, GlobeTrotterError

# Configuration
BACKEND_URL = os.getenv("GLOBETROTTER_URL", "http://localhost:3001")
EMAIL = os.getenv("GLOBETROTTER_EMAIL", "traveler@example.com")
PASSWORD = os.getenv("GLOBETROTTER_PASSWORD", "wanderlust")


def main():
    print("=" * 60)
    print("GlobeTrotter Quickstart")
    print("=" * 60)
    print()

    # Step 1: Sign up or log in
    print("1. Signing in...")
    laptop = GlobeTrotterClient(base_url=BACKEND_URL)
    try:
        laptop.signup(EMAIL, PASSWORD)
        print(f"   ✓ Account created for {EMAIL}")
    except GlobeTrotterError as exc:
        if exc.code != "EMAIL_TAKEN":
            raise
        laptop.login(EMAIL, PASSWORD)
        print(f"   ✓ Logged in as {EMAIL}")
    print()

    # Step 2: Profile
    print("2. Updating profile...")
    profile = laptop.update_profile(name="Ada", homeCountry="GB", currency="GBP")
    print(f"   ✓ {profile['name']} ({profile['homeCountry']}, {profile['currency']})")
    print()

    # Step 3: A second device
    print("3. Logging in from a phone...")
    phone = GlobeTrotterClient(base_url=BACKEND_URL)
    phone.login(EMAIL, PASSWORD)
    sessions = laptop.sessions()
    print(f"   ✓ {len(sessions)} active session(s)")
    print()

    # Step 4: Revoke the phone (newest session first)
    print("4. Revoking the phone session...")
    laptop.revoke_session(sessions[0]["id"])
    try:
        phone.refresh()
    except GlobeTrotterError as exc:
        print(f"   ✓ Phone can no longer refresh: {exc.code}")
    print()

    # Step 5: Logout
    print("5. Logging out...")
    laptop.logout()
    print("   ✓ Done")


if __name__ == "__main__":
    main()
