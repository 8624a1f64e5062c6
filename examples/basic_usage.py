"""
Basic usage examples for the Moodle client.

This example demonstrates:
- Obtaining a token with username and password
- Calling web service functions with GET and POST
- Passing nested arguments
- Error handling
"""

import asyncio
import logging

import moodle_client
from moodle_client import MoodleClientError, RemoteExecutionError


async def main():
    """Main example function."""
    logging.basicConfig(level=logging.DEBUG)

    client = await moodle_client.init(
        "https://moodle.example.com",
        username="wsuser",
        password="secret",
    )

    async with client:
        try:
            info = await client.call("core_webservice_get_site_info")
            print(f"Connected to {info['sitename']} as {info['username']}")

            # Nested arguments are sent as users[0][id]=2&users[1][id]=3
            users = await client.call(
                "core_user_get_users_by_field",
                {"field": "id", "values": [2, 3]},
            )
            for user in users:
                print(f"  {user['fullname']}")

            # Large payloads go in the POST body
            await client.call(
                "core_course_get_courses_by_field",
                {"field": "category", "value": 1},
                {"method": "POST", "raw": True},
            )

        except RemoteExecutionError as e:
            print(f"Remote function failed: {e.exception} [{e.errorcode}] {e.message}")
        except MoodleClientError as e:
            print(f"Request failed: {e}")


if __name__ == "__main__":
    asyncio.run(main())
