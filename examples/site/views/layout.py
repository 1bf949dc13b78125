"""Site layout with a content slot and a sidebar slot."""


def render(data):
    site = data["global"]["site"]
    return (
        f"<html><head><title>{data.get('title', site)}</title></head><body>"
        + data["include"]("nav")
        + f"<main>{data['body']}</main>"
        + f"<aside>{data['aside']}</aside>"
        + data["include"]("footer")
        + "</body></html>"
    )
