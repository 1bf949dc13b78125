def render(data):
    body = f"<h1>Welcome, {data['user']}</h1>"
    return data["layout"]("layout:body:aside", body, "<p>Latest news</p>")
